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
Multimodal Deep Boltzmann Machine as a stack of layer pairs

A MultimodalDBM with N layers is described by N-1 layer pairs; the hidden
layer of pair i is the visible layer of pair i+1. Multimodality comes from
using a PartitionedRBM for the lower layers, so that different groups of
visible nodes can follow different distributions.
"""

from typing import Iterator, List, Sequence, Union
import torch
import torch.nn as nn
import logging

from .rbm import AbstractRBM
from .partitioned import PartitionedRBM

logger = logging.getLogger(__name__)

LayerPair = Union[AbstractRBM, PartitionedRBM]


class MultimodalDBM(nn.Module):
    """
    Deep Boltzmann Machine composed of stacked layer pairs.

    The in-between layers receive input from the layers above and below and
    must therefore consist of Bernoulli distributed nodes.
    """

    def __init__(self, rbms: Sequence[LayerPair]):
        """
        Initialize DBM from its layer pairs.

        Args:
            rbms: Layer pairs from the visible layer upwards

        Raises:
            ValueError: If the layer pairs do not fit together or an
                intermediate layer is not Bernoulli distributed
        """
        super().__init__()

        if len(rbms) == 0:
            raise ValueError("DBM requires at least one layer pair")

        for i in range(len(rbms) - 1):
            lower, upper = rbms[i], rbms[i + 1]
            if lower.n_hidden != upper.n_visible:
                raise ValueError(
                    f"Layer pair {i} has {lower.n_hidden} hidden nodes but layer "
                    f"pair {i + 1} has {upper.n_visible} visible nodes"
                )
            if lower.hidden_types != {"bernoulli"} or upper.visible_types != {"bernoulli"}:
                raise ValueError(
                    f"Layer {i + 2} is an intermediate layer and must contain only "
                    f"Bernoulli nodes (got hidden types {sorted(lower.hidden_types)} "
                    f"and visible types {sorted(upper.visible_types)})"
                )

        self.rbms = nn.ModuleList(rbms)

    def __len__(self) -> int:
        return len(self.rbms)

    def __getitem__(self, idx):
        return self.rbms[idx]

    def __iter__(self) -> Iterator[LayerPair]:
        return iter(self.rbms)

    @property
    def n_layers(self) -> int:
        return len(self.rbms) + 1

    @property
    def layer_sizes(self) -> List[int]:
        """Number of nodes per layer, from the visible layer upwards."""
        return [self.rbms[0].n_visible] + [rbm.n_hidden for rbm in self.rbms]

    @property
    def dtype(self) -> torch.dtype:
        return self.rbms[0].dtype

    @property
    def device(self) -> torch.device:
        return self.rbms[0].device

    def __repr__(self) -> str:
        return f"MultimodalDBM(layer_sizes={self.layer_sizes})"
