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
Restricted Boltzmann Machine layer pairs with typed visible and hidden nodes

This module implements the transfer functions of a single connected pair of
layers for the supported node distributions:
- BernoulliRBM: Bernoulli visible and hidden nodes
- Binomial2BernoulliRBM: Binomial(2, p) visible nodes
- GaussianBernoulliRBM / GaussianBernoulliRBM2: Gaussian visible nodes with
  per-node standard deviation (two parameterizations)
- Softmax0BernoulliRBM: categorical visible variables with implicit zero category
- BernoulliGaussianRBM: Gaussian (unit variance) hidden nodes

For each direction there is an input (weighted sum plus bias), a potential
(deterministic expected activation) and a sample operation. Activations may be
vectors or matrices containing the samples in their rows.
"""

from typing import FrozenSet, Optional, Sequence, Union
import torch
import torch.nn as nn
import numpy as np
import logging

from .utils import (
    bernoulli_,
    binomial2_,
    categorical0_,
    check_ranges,
    gaussian_noise_,
    sigm,
    sigm_,
    softmax0_,
)

logger = logging.getLogger(__name__)

ArrayLike = Union[torch.Tensor, np.ndarray, Sequence[float]]


def _store(result: torch.Tensor, out: Optional[torch.Tensor]) -> torch.Tensor:
    """Write ``result`` into ``out`` if given (``out`` may be a view)."""
    if out is None:
        return result
    out.copy_(result)
    return out


def _check_width(x: torch.Tensor, n_nodes: int, layer: str) -> None:
    if x.dim() not in (1, 2) or x.shape[-1] != n_nodes:
        raise ValueError(
            f"Expected {layer} activations with {n_nodes} columns, "
            f"got tensor of shape {tuple(x.shape)}"
        )


class AbstractRBM(nn.Module):
    """
    Base class for a layer pair with Bernoulli hidden nodes.

    Holds the weight matrix (n_visible x n_hidden) and the bias vectors as
    non-trainable buffers and implements the linear inputs and the Bernoulli
    hidden side. Subclasses define the visible node distribution.
    """

    visible_type: str = "abstract"
    hidden_type: str = "bernoulli"

    def __init__(
        self,
        weights: ArrayLike,
        visbias: ArrayLike,
        hidbias: ArrayLike,
        device: Optional[torch.device] = None,
        dtype: torch.dtype = torch.float64,
    ):
        """
        Initialize layer pair from materialized parameters.

        Args:
            weights: Weight matrix [n_visible, n_hidden]
            visbias: Visible bias [n_visible]
            hidbias: Hidden bias [n_hidden]
            device: Device to place tensors on
            dtype: Data type for tensors

        Raises:
            ValueError: If the parameter shapes do not match
        """
        super().__init__()

        self.device = device or torch.device('cpu')
        self.dtype = dtype

        weights = self._as_tensor(weights)
        visbias = self._as_tensor(visbias)
        hidbias = self._as_tensor(hidbias)

        if visbias.dim() != 1 or hidbias.dim() != 1:
            raise ValueError("Bias terms must be vectors")
        if weights.dim() != 2 or tuple(weights.shape) != (len(visbias), len(hidbias)):
            raise ValueError(
                f"Weight matrix has shape {tuple(weights.shape)}, expected "
                f"({len(visbias)}, {len(hidbias)}) from the bias vectors"
            )

        self.register_buffer('weights', weights)
        self.register_buffer('visbias', visbias)
        self.register_buffer('hidbias', hidbias)

    def _as_tensor(self, x: ArrayLike) -> torch.Tensor:
        return torch.as_tensor(x, dtype=self.dtype, device=self.device)

    @property
    def n_visible(self) -> int:
        """Number of visible nodes."""
        return self.visbias.shape[0]

    @property
    def n_hidden(self) -> int:
        """Number of hidden nodes."""
        return self.hidbias.shape[0]

    @property
    def visible_types(self) -> FrozenSet[str]:
        return frozenset([self.visible_type])

    @property
    def hidden_types(self) -> FrozenSet[str]:
        return frozenset([self.hidden_type])

    def alloc_hidden_for(self, v: torch.Tensor) -> torch.Tensor:
        """Allocate hidden activations matching the vector/matrix form of ``v``."""
        return torch.empty((*v.shape[:-1], self.n_hidden), dtype=self.dtype, device=self.device)

    def alloc_visible_for(self, h: torch.Tensor) -> torch.Tensor:
        """Allocate visible activations matching the vector/matrix form of ``h``."""
        return torch.empty((*h.shape[:-1], self.n_visible), dtype=self.dtype, device=self.device)

    # Inputs

    def hidden_input(self, v: torch.Tensor, out: Optional[torch.Tensor] = None) -> torch.Tensor:
        """
        Compute the total input of the hidden nodes given visible activations.

        Args:
            v: Visible activations [n_visible] or [n_samples, n_visible]
            out: Optional buffer for the result

        Returns:
            Hidden input ``v @ W + hidbias``
        """
        _check_width(v, self.n_visible, "visible")
        return _store(torch.matmul(v, self.weights) + self.hidbias, out)

    def visible_input(self, h: torch.Tensor, out: Optional[torch.Tensor] = None) -> torch.Tensor:
        """
        Compute the total input of the visible nodes given hidden activations.

        Args:
            h: Hidden activations [n_hidden] or [n_samples, n_hidden]
            out: Optional buffer for the result

        Returns:
            Visible input ``h @ W.T + visbias``
        """
        _check_width(h, self.n_hidden, "hidden")
        return _store(torch.matmul(h, self.weights.t()) + self.visbias, out)

    # Hidden side (Bernoulli)

    def hidden_potential(
        self,
        v: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        """
        Compute the potential of the hidden nodes given visible activations.

        For Bernoulli hidden nodes, the potential is the probability of each
        node to be turned on. The total input is scaled with ``factor`` before
        the nonlinearity is applied, which is needed when the layer pair is
        part of a deep model.

        Args:
            v: Visible activations [n_visible] or [n_samples, n_visible]
            factor: Scaling of the total input
            out: Optional buffer for the result

        Returns:
            Hidden potential
        """
        h = self.hidden_input(v)
        if factor != 1.0:
            h *= factor
        return _store(sigm_(h), out)

    def sample_hidden_potential_(
        self,
        h: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        """Sample hidden activations in place from the potential ``h``."""
        return bernoulli_(h, generator)

    def init_hidden_nodes_(
        self,
        h: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        """
        Initialize hidden activations in place.

        Args:
            h: Hidden activations [n_samples, n_hidden]
            biased: Draw from sigm(hidbias) instead of a fair coin
            generator: Random number generator

        Returns:
            h
        """
        if biased:
            h.copy_(sigm(self.hidbias).expand_as(h))
            return bernoulli_(h, generator)
        return h.copy_(torch.randint(0, 2, h.shape, generator=generator, device=h.device))

    # Visible side (defined by subclasses)

    def visible_potential(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        raise NotImplementedError(f"{type(self).__name__} does not define visible nodes")

    def sample_visible_potential_(
        self,
        v: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        raise NotImplementedError(f"{type(self).__name__} does not define visible nodes")

    def init_visible_nodes_(
        self,
        v: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        raise NotImplementedError(f"{type(self).__name__} does not define visible nodes")

    # Sampling

    def sample_hidden(
        self,
        v: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        """
        Sample hidden activations given visible activations.

        Args:
            v: Visible activations [n_visible] or [n_samples, n_visible]
            factor: Scaling of the total input (see ``hidden_potential``)
            out: Optional buffer for the result
            generator: Random number generator

        Returns:
            Hidden samples
        """
        h = self.hidden_potential(v, factor, out=out)
        return self.sample_hidden_potential_(h, generator)

    def sample_visible(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        """
        Sample visible activations given hidden activations.

        Args:
            h: Hidden activations [n_hidden] or [n_samples, n_hidden]
            factor: Scaling of the total input (see ``visible_potential``)
            out: Optional buffer for the result
            generator: Random number generator

        Returns:
            Visible samples
        """
        v = self.visible_potential(h, factor, out=out)
        return self.sample_visible_potential_(v, generator)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"n_visible={self.n_visible}, "
            f"n_hidden={self.n_hidden})"
        )


class BernoulliRBM(AbstractRBM):
    """RBM with Bernoulli distributed visible and hidden nodes."""

    visible_type = "bernoulli"

    def visible_potential(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        """
        Compute the probabilities of the visible nodes to be turned on.

        Args:
            h: Hidden activations [n_hidden] or [n_samples, n_hidden]
            factor: Scaling of the total input before the logistic function
            out: Optional buffer for the result

        Returns:
            Visible potential
        """
        v = self.visible_input(h)
        if factor != 1.0:
            v *= factor
        return _store(sigm_(v), out)

    def sample_visible_potential_(
        self,
        v: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        return bernoulli_(v, generator)

    def init_visible_nodes_(
        self,
        v: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        if biased:
            v.copy_(sigm(self.visbias).expand_as(v))
            return bernoulli_(v, generator)
        return v.copy_(torch.randint(0, 2, v.shape, generator=generator, device=v.device))


class Binomial2BernoulliRBM(AbstractRBM):
    """
    RBM with Binomial(2, p) distributed visible nodes.

    Visible values lie in {0, 1, 2}. The visible potential is reported as 2p
    so that it occupies the same range as the sampled values. The hidden input
    is implicitly doubled because of the visible range; it is computed exactly
    as for a BernoulliRBM.
    """

    visible_type = "binomial2"

    def visible_potential(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        v = self.visible_input(h)
        if factor != 1.0:
            v *= factor
        return _store(sigm_(v).mul_(2.0), out)

    def sample_visible_potential_(
        self,
        v: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        v /= 2.0
        return binomial2_(v, generator)

    def init_visible_nodes_(
        self,
        v: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        """
        Initialize visible activations in place.

        Unbiased initialization draws uniformly from the four symbols
        {0, 1, 1, 2}, which equals Binomial(2, 0.5).
        """
        if biased:
            v.copy_(sigm(self.visbias).expand_as(v))
            return binomial2_(v, generator)
        symbols = torch.tensor([0.0, 1.0, 1.0, 2.0], dtype=v.dtype, device=v.device)
        return v.copy_(symbols[torch.randint(0, 4, v.shape, generator=generator, device=v.device)])


class GaussianBernoulliRBM(AbstractRBM):
    """
    RBM with Gaussian visible nodes and a standard deviation per node.

    The weights are divided by the standard deviations for the hidden input
    and the hidden contribution to the visible means is scaled with them.
    """

    visible_type = "gaussian"

    def __init__(
        self,
        weights: ArrayLike,
        visbias: ArrayLike,
        hidbias: ArrayLike,
        sd: ArrayLike,
        device: Optional[torch.device] = None,
        dtype: torch.dtype = torch.float64,
    ):
        """
        Initialize Gaussian-Bernoulli layer pair.

        Args:
            weights: Weight matrix [n_visible, n_hidden]
            visbias: Visible bias (means of the visible nodes) [n_visible]
            hidbias: Hidden bias [n_hidden]
            sd: Standard deviations of the visible nodes [n_visible]
            device: Device to place tensors on
            dtype: Data type for tensors
        """
        super().__init__(weights, visbias, hidbias, device=device, dtype=dtype)
        sd = self._as_tensor(sd)
        if sd.dim() != 1 or len(sd) != self.n_visible:
            raise ValueError(
                f"Standard deviation vector has shape {tuple(sd.shape)}, "
                f"expected ({self.n_visible},)"
            )
        self.register_buffer('sd', sd)

    def _scaled_weights(self) -> torch.Tensor:
        return self.weights / self.sd.unsqueeze(1)

    def hidden_input(self, v: torch.Tensor, out: Optional[torch.Tensor] = None) -> torch.Tensor:
        _check_width(v, self.n_visible, "visible")
        return _store(torch.matmul(v, self._scaled_weights()) + self.hidbias, out)

    def visible_potential(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        """
        Compute the means of the visible nodes.

        The potential is linear, so ``factor`` has no effect here.
        """
        _check_width(h, self.n_hidden, "hidden")
        v = torch.matmul(h, self.weights.t()) * self.sd + self.visbias
        return _store(v, out)

    def sample_visible_potential_(
        self,
        v: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        return gaussian_noise_(v, self.sd, generator)

    def init_visible_nodes_(
        self,
        v: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        v.copy_(torch.randn(v.shape, generator=generator, dtype=v.dtype, device=v.device))
        if biased:
            v.mul_(self.sd).add_(self.visbias)
        return v


class GaussianBernoulliRBM2(GaussianBernoulliRBM):
    """
    RBM with Gaussian visible nodes, alternative parameterization.

    The weights are divided by the variances for the hidden input and the
    visible means are not scaled with the standard deviations.
    """

    def _scaled_weights(self) -> torch.Tensor:
        return self.weights / self.sd.pow(2).unsqueeze(1)

    def visible_potential(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        _check_width(h, self.n_hidden, "hidden")
        return _store(torch.matmul(h, self.weights.t()) + self.visbias, out)

    def init_visible_nodes_(
        self,
        v: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        v.copy_(torch.randn(v.shape, generator=generator, dtype=v.dtype, device=v.device))
        if biased:
            v.add_(self.visbias)
        return v


class Softmax0BernoulliRBM(AbstractRBM):
    """
    RBM with categorical visible variables encoded as groups of nodes.

    Each group of visible nodes (given by ``varranges``) encodes one
    categorical variable. At most one node of a group is active; if none is,
    the variable takes the value of an implicit extra category.
    """

    visible_type = "softmax0"

    def __init__(
        self,
        weights: ArrayLike,
        visbias: ArrayLike,
        hidbias: ArrayLike,
        varranges: Sequence[Union[range, Sequence[int]]],
        device: Optional[torch.device] = None,
        dtype: torch.dtype = torch.float64,
    ):
        """
        Initialize Softmax0-Bernoulli layer pair.

        Args:
            weights: Weight matrix [n_visible, n_hidden]
            visbias: Visible bias [n_visible]
            hidbias: Hidden bias [n_hidden]
            varranges: Contiguous column ranges of the categorical variables,
                partitioning the visible nodes
            device: Device to place tensors on
            dtype: Data type for tensors
        """
        super().__init__(weights, visbias, hidbias, device=device, dtype=dtype)
        self.varranges = check_ranges(varranges, self.n_visible)

    def visible_potential(
        self,
        h: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        """Compute the category probabilities for each categorical variable."""
        v = self.visible_input(h)
        if factor != 1.0:
            v *= factor
        return _store(softmax0_(v, self.varranges), out)

    def sample_visible_potential_(
        self,
        v: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        return categorical0_(v, self.varranges, generator)

    def init_visible_nodes_(
        self,
        v: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        """
        Initialize visible activations in place.

        Unbiased initialization picks one of the categories of each variable,
        including the implicit one, with equal probability.
        """
        if biased:
            v.copy_(softmax0_(self.visbias.clone(), self.varranges).expand_as(v))
            return self.sample_visible_potential_(v, generator)

        u = torch.rand((v.shape[0], len(self.varranges)), generator=generator,
                       dtype=v.dtype, device=v.device)
        for k, varrange in enumerate(self.varranges):
            size = len(varrange)
            # index -1 selects the implicit category
            chosen = (torch.floor(u[:, k] * (size + 1)).long() - 1).clamp_(max=size - 1)
            categories = torch.arange(size, device=v.device)
            v[:, varrange.start:varrange.stop] = (categories.unsqueeze(0) == chosen.unsqueeze(1)).to(v.dtype)
        return v

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}("
            f"n_visible={self.n_visible}, "
            f"n_hidden={self.n_hidden}, "
            f"n_variables={len(self.varranges)})"
        )


class BernoulliGaussianRBM(BernoulliRBM):
    """RBM with Bernoulli visible nodes and unit-variance Gaussian hidden nodes."""

    hidden_type = "gaussian"

    def hidden_potential(
        self,
        v: torch.Tensor,
        factor: float = 1.0,
        out: Optional[torch.Tensor] = None
    ) -> torch.Tensor:
        h = self.hidden_input(v)
        if factor != 1.0:
            h *= factor
        return _store(h, out)

    def sample_hidden_potential_(
        self,
        h: torch.Tensor,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        return gaussian_noise_(h, generator=generator)

    def init_hidden_nodes_(
        self,
        h: torch.Tensor,
        biased: bool = False,
        generator: Optional[torch.Generator] = None
    ) -> torch.Tensor:
        h.copy_(torch.randn(h.shape, generator=generator, dtype=h.dtype, device=h.device))
        if biased:
            h.add_(self.hidbias)
        return h


RBM_TYPES = (
    BernoulliRBM,
    Binomial2BernoulliRBM,
    GaussianBernoulliRBM,
    GaussianBernoulliRBM2,
    Softmax0BernoulliRBM,
    BernoulliGaussianRBM,
)
