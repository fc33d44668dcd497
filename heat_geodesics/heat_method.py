"""One-shot geodesic distance queries with the heat method.

The heavy lifting (operators, factorizations) lives on :class:`Manifold`; this
module builds initial conditions, runs a single query and offers the optional
additive-constant calibration that the solver itself never applies.
"""

from __future__ import annotations
from heat_geodesics.config import HeatMethodConfig
from heat_geodesics.geometry import to_point
from heat_geodesics.manifold import Manifold
import logging
from torch import as_tensor, float64, stack, Tensor, zeros
from torch.linalg import norm
from typing import List, Optional, Sequence, Union


_LOGGER = logging.getLogger(__name__)


def sources_to_initial_conditions(num_vertices: int, source_idxs: Sequence[int], values: Optional[Union[float, Sequence[float]]] = None, separate: bool = False) -> Tensor:
    """Builds heat initial conditions from source vertices

    Args:
        num_vertices (int): number of mesh vertices
        source_idxs (Sequence[int]): source vertex indices
        values: heat injected at each source, 1 by default
        separate (bool): whether each source gets its own column (one query per source) or all sources share one column

    Returns:
        num_vertices list (or num_vertices * num_sources if separate) of initial heat values
    """
    source_idxs = as_tensor(source_idxs, dtype=int).reshape(-1)
    if len(source_idxs) == 0:
        raise ValueError('at least one source vertex is required')
    if (source_idxs < 0).any() or (source_idxs >= num_vertices).any():
        raise ValueError(f'source indices must lie in [0, {num_vertices})')

    values = as_tensor(1. if values is None else values, dtype=float64).expand(len(source_idxs))

    if separate:
        u_0s = zeros(num_vertices, len(source_idxs), dtype=float64)
        for j, (source_idx, value) in enumerate(zip(source_idxs, values)):
            u_0s[source_idx, j] = value
        return u_0s

    u_0 = zeros(num_vertices, dtype=float64)
    u_0.index_put_((source_idxs,), values, accumulate=True)
    return u_0


def points_to_source_vertices(fs: Tensor, points: Sequence) -> List[int]:
    """Snaps source points to their nearest mesh vertices

    Args:
        fs (Tensor): num_vertices * 3 list of vertex positions
        points (Sequence): source points, each a length 3 sequence of coordinates

    Returns:
        list of vertex indices, one per point
    """
    ps = stack([to_point(p) for p in points])
    return norm(as_tensor(fs, dtype=float64).unsqueeze(0) - ps.unsqueeze(1), dim=-1).argmin(dim=-1).tolist()


def calibrate_distances(dists: Tensor, source_idxs: Optional[Sequence[int]] = None) -> Tensor:
    """Removes the additive constant of heat method distances

    Args:
        dists (Tensor): num_vertices or num_vertices * num_sources list of distances
        source_idxs (Sequence[int]): if given, shift so the mean distance over these vertices is zero, otherwise shift so the minimum is zero

    Returns:
        shifted distances with the same shape as dists
    """
    if source_idxs is None:
        return dists - dists.min(dim=0, keepdim=True).values

    source_idxs = as_tensor(source_idxs, dtype=int).reshape(-1)
    return dists - dists[source_idxs].mean(dim=0, keepdim=True)


def heat_method_geodesic(fs: Tensor, faces: Tensor, initial_conditions: Tensor, m: Optional[float] = None, config: Optional[HeatMethodConfig] = None) -> Tensor:
    """Computes relative geodesic distance on a closed manifold mesh with the heat method

    Note:
        The result is defined up to an additive constant; see calibrate_distances

    Args:
        fs (Tensor): num_vertices * 3 list of vertex positions
        faces (Tensor): num_faces * 3 list of vertices per face
        initial_conditions (Tensor): num_vertices (or num_vertices * num_sources) list of initial heat values
        m (float): multiplier of the diffusion time m * h^2, where h is the average edge length, defaults to config.diff_coeff
        config (HeatMethodConfig): numerical settings

    Returns:
        distances with the same shape as initial_conditions
    """
    fs = as_tensor(fs, dtype=float64)
    faces = as_tensor(faces)
    if fs.dim() != 2 or fs.shape[-1] != 3:
        raise ValueError(f'fs must have shape num_vertices * 3, got {tuple(fs.shape)}')

    manifold = Manifold(faces, num_vertices=len(fs))
    _LOGGER.debug('Heat method query: %d vertices, %d faces', manifold.num_vertices, manifold.num_faces)

    solver = manifold.embedding_to_heat_method_solver(fs, diff_coeff=m, config=config)
    return solver(as_tensor(initial_conditions, dtype=float64))
