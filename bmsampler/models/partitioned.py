# Copyright 2025 NeuroBM Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Partitioned RBMs: block-diagonal composition of independent layer pairs

A PartitionedRBM places independent layer pairs side by side. Each sub-model
owns a contiguous slice of the visible and of the hidden nodes, and every
operation is computed by delegating to the sub-models on their slices of the
caller's buffers.
"""

from typing import Iterator, List, Optional, Sequence, Tuple, Union
import torch
import torch.nn as nn
import logging

from .rbm import AbstractRBM, _check_width
from .utils import check_ranges

logger = logging.getLogger(__name__)

RangeLike = Union[range, Sequence[int]]


def _consecutive_ranges(sizes: Sequence[int]) -> List[range]:
    ranges = []
    start = 0
    for size in sizes:
        ranges.append(range(start, start + size))
        start += size
    return ranges


class PartitionedRBM(nn.Module):
    """
    Block-diagonal composition of independent RBMs.

    Supports the same operations as the single layer pairs in
    ``bmsampler.models.rbm``; sub-models may be of different types.
    """

    def __init__(
        self,
        rbms: Sequence[Union[AbstractRBM, "PartitionedRBM"]],
        visranges: Optional[Sequence[RangeLike]] = None,
        hidranges: Optional[Sequence[RangeLike]] = None,
    ):
        """
        Initialize partitioned RBM.

        Args:
            rbms: Sub-models in the order of their node ranges
            visranges: Visible column ranges of the sub-models (consecutive if None)
            hidranges: Hidden column ranges of the sub-models (consecutive if None)

        Raises:
            ValueError: If no sub-models are given or the ranges do not
                partition the visible/hidden nodes according to the sub-models
        """
        super().__init__()

        if len(rbms) == 0:
            raise ValueError("PartitionedRBM requires at least one sub-model")

        self.rbms = nn.ModuleList(rbms)

        n_visible = sum(rbm.n_visible for rbm in rbms)
        n_hidden = sum(rbm.n_hidden for rbm in rbms)
        if visranges is None:
            visranges = _consecutive_ranges([rbm.n_visible for rbm in rbms])
        if hidranges is None:
            hidranges = _consecutive_ranges([rbm.n_hidden for rbm in rbms])
        if len(visranges) != len(rbms) or len(hidranges) != len(rbms):
            raise ValueError("Need exactly one visible and one hidden range per sub-model")

        self.visranges = check_ranges(visranges, n_visible)
        self.hidranges = check_ranges(hidranges, n_hidden)

        for i, rbm in enumerate(rbms):
            if len(self.visranges[i]) != rbm.n_visible or len(self.hidranges[i]) != rbm.n_hidden:
                raise ValueError(
                    f"Ranges of sub-model {i} ({self.visranges[i]}, {self.hidranges[i]}) "
                    f"do not match its size ({rbm.n_visible}, {rbm.n_hidden})"
                )

        self._n_visible = n_visible
        self._n_hidden = n_hidden

    @property
    def n_visible(self) -> int:
        return self._n_visible

    @property
    def n_hidden(self) -> int:
        return self._n_hidden

    @property
    def dtype(self) -> torch.dtype:
        return self.rbms[0].dtype

    @property
    def device(self) -> torch.device:
        return self.rbms[0].device

    @property
    def visible_types(self):
        return frozenset().union(*(rbm.visible_types for rbm in self.rbms))

    @property
    def hidden_types(self):
        return frozenset().union(*(rbm.hidden_types for rbm in self.rbms))

    def _parts(self) -> Iterator[Tuple[AbstractRBM, slice, slice]]:
        for rbm, visrange, hidrange in zip(self.rbms, self.visranges, self.hidranges):
            yield rbm, slice(visrange.start, visrange.stop), slice(hidrange.start, hidrange.stop)

    def alloc_hidden_for(self, v: torch.Tensor) -> torch.Tensor:
        return torch.empty((*v.shape[:-1], self.n_hidden), dtype=self.dtype, device=self.device)

    def alloc_visible_for(self, h: torch.Tensor) -> torch.Tensor:
        return torch.empty((*h.shape[:-1], self.n_visible), dtype=self.dtype, device=self.device)

    # Inputs and potentials

    def hidden_input(self, v: torch.Tensor, out: Optional[torch.Tensor] = None) -> torch.Tensor:
        _check_width(v, self.n_visible, "visible")
        h = self.alloc_hidden_for(v) if out is None else out
        for rbm, vis, hid in self._parts():
            rbm.hidden_input(v[..., vis], out=h[..., hid])
        return h

    def visible_input(self, h: torch.Tensor, out: Optional[torch.Tensor] = None) -> torch.Tensor:
        _check_width(h, self.n_hidden, "hidden")
        v = self.alloc_visible_for(h) if out is None else out
        for rbm, vis, hid in self._parts():
            rbm.visible_input(h[..., hid], out=v[..., vis])
        return v

    def hidden_potential(
        self,
        v: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        _check_width(v, self.n_visible, "visible")
        h = self.alloc_hidden_for(v) if out is None else out
        for rbm, vis, hid in self._parts():
            rbm.hidden_potential(v[..., vis], factor, out=h[..., hid])
        return h

    def visible_potential(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        _check_width(h, self.n_hidden, "hidden")
        v = self.alloc_visible_for(h) if out is None else out
        for rbm, vis, hid in self._parts():
            rbm.visible_potential(h[..., hid], factor, out=v[..., vis])
        return v

    # Sampling

    def sample_hidden_potential_(
        self,
        h: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        for rbm, _, hid in self._parts():
            rbm.sample_hidden_potential_(h[..., hid], generator)
        return h

    def sample_visible_potential_(
        self,
        v: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        for rbm, vis, _ in self._parts():
            rbm.sample_visible_potential_(v[..., vis], generator)
        return v

    def sample_hidden(
        self,
        v: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        h = self.hidden_potential(v, factor, out=out)
        return self.sample_hidden_potential_(h, generator)

    def sample_visible(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        v = self.visible_potential(h, factor, out=out)
        return self.sample_visible_potential_(v, generator)

    # Initialization

    def init_hidden_nodes_(
        self,
        h: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        for rbm, _, hid in self._parts():
            rbm.init_hidden_nodes_(h[:, hid], biased, generator)
        return h

    def init_visible_nodes_(
        self,
        v: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        for rbm, vis, _ in self._parts():
            rbm.init_visible_nodes_(v[:, vis], biased, generator)
        return v

    def __repr__(self) -> str:
        parts = ", ".join(repr(rbm) for rbm in self.rbms)
        return f"PartitionedRBM([{parts}])"
