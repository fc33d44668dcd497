from __future__ import annotations
from heat_geodesics.config import HeatMethodConfig
from heat_geodesics.errors import DegenerateGeometryError, FactorizationError, SingularFieldError, TopologyError
from heat_geodesics.geometry import cotan, heron_area
from heat_geodesics.utils import factorize
import logging
from math import isfinite
from torch import arange, bincount, cat, float64, ones, sparse_coo_tensor, stack, Tensor, tensor, where, zeros, zeros_like
from torch.linalg import cross, norm
from torch.nn import Module
from tqdm import tqdm
from typing import Callable, List, Optional, Tuple


_LOGGER = logging.getLogger(__name__)


class Manifold(Module):
    """Stores topological data for a closed manifold triangle mesh. Computes the discrete operators of the heat method when vertex positions are provided."""

    def __init__(self, faces: Tensor, num_vertices: Optional[int] = None, dtype=float64):
        """
        Args:
            faces (Tensor): num_faces * 3 list of vertices per face, consistently (counter-clockwise) oriented
            num_vertices (int): number of vertices, defaults to largest vertex index in faces plus one

        Raises:
            TopologyError: if a face repeats a vertex or a directed edge appears in more than one face
        """
        Module.__init__(self)
        faces = faces.clone().long()
        if faces.dim() != 2 or faces.shape[-1] != 3:
            raise ValueError(f'faces must have shape num_faces * 3, got {tuple(faces.shape)}')
        self.register_buffer('faces', faces)

        self.num_vertices = faces.max().item() + 1 if num_vertices is None else num_vertices
        if faces.min().item() < 0 or faces.max().item() >= self.num_vertices:
            raise ValueError(f'face vertex indices must lie in [0, {self.num_vertices})')
        self.num_faces = len(faces)
        self.num_halfedges = 3 * self.num_faces

        is_degenerate_face = (faces[:, 0] == faces[:, 1]) | (faces[:, 1] == faces[:, 2]) | (faces[:, 2] == faces[:, 0])
        if is_degenerate_face.any():
            idxs = arange(self.num_faces)[is_degenerate_face].tolist()
            raise TopologyError(f'faces {idxs} repeat a vertex', idxs)

        # Halfedge 3 * f + k points from faces[f, k] to faces[f, (k + 1) % 3]; it doubles as corner k of face f
        self.register_buffer('tails_to_halfedges', faces.flatten())
        self.register_buffer('tips_to_halfedges', faces[:, tensor([1, 2, 0])].flatten())
        self.halfedges_to_faces = arange(self.num_halfedges).reshape(self.num_faces, 3)

        col_idxs = arange(self.num_halfedges)
        values = ones(self.num_halfedges, dtype=dtype)
        self.register_buffer('halfedges_to_tails', sparse_coo_tensor(stack([self.tails_to_halfedges, col_idxs]), values, (self.num_vertices, self.num_halfedges)).coalesce())

        # Pair twin halfedges and find boundary halfedges (halfedges without a twin)
        tails = self.tails_to_halfedges.tolist()
        tips = self.tips_to_halfedges.tolist()
        directed_edges = {}
        for halfedge, directed_edge in enumerate(zip(tails, tips)):
            if directed_edge in directed_edges:
                idxs = [directed_edges[directed_edge] // 3, halfedge // 3]
                raise TopologyError(f'directed edge {directed_edge} appears in faces {idxs}; faces are non-manifold or inconsistently oriented', idxs)
            directed_edges[directed_edge] = halfedge

        twins = [directed_edges.get((tip, tail), -1) for tail, tip in zip(tails, tips)]
        self.register_buffer('halfedges_to_twins', tensor(twins, dtype=int))
        self.is_boundary_halfedge = self.halfedges_to_twins < 0
        self.num_edges = (self.num_halfedges + self.is_boundary_halfedge.sum().item()) // 2
        self.euler_char = self.num_vertices - self.num_edges + self.num_faces

        twin_faces = self.halfedges_to_twins // 3
        self.faces_to_neighbors = where(self.is_boundary_halfedge, -1, twin_faces).reshape(self.num_faces, 3)

        self.vertex_degrees = bincount(self.tails_to_halfedges, minlength=self.num_vertices)
        vertices_to_halfedges = -ones(self.num_vertices, dtype=int)
        vertices_to_halfedges[self.tails_to_halfedges] = arange(self.num_halfedges)
        self.vertices_to_halfedges = vertices_to_halfedges

        is_interior_vertex = self.vertex_degrees > 0
        is_interior_vertex[self.tails_to_halfedges[self.is_boundary_halfedge]] = False
        self.is_interior_vertex = is_interior_vertex
        self.boundary_vertices = arange(self.num_vertices)[~self.is_interior_vertex]
        self.is_closed = not self.is_boundary_halfedge.any().item()

        self.vertices_to_components, self.num_components = self._label_components(tails, tips)

    def _label_components(self, tails: List[int], tips: List[int]) -> Tuple[Tensor, int]:
        parents = list(range(self.num_vertices))

        def find(i):
            while parents[i] != i:
                parents[i] = parents[parents[i]]
                i = parents[i]
            return i

        for tail, tip in zip(tails, tips):
            root_tail, root_tip = find(tail), find(tip)
            if root_tail != root_tip:
                parents[max(root_tail, root_tip)] = min(root_tail, root_tip)

        roots = [find(i) for i in range(self.num_vertices)]
        labels = {root: label for label, root in enumerate(sorted(set(roots)))}
        return tensor([labels[root] for root in roots]), len(labels)

    def halfedge_to_next(self, halfedge: int) -> int:
        """Next halfedge in the same face"""
        return 3 * (halfedge // 3) + (halfedge + 1) % 3

    def halfedge_to_prev(self, halfedge: int) -> int:
        """Previous halfedge in the same face"""
        return 3 * (halfedge // 3) + (halfedge + 2) % 3

    def vertex_to_one_ring(self, vertex: int) -> List[int]:
        """Walks the one-ring of a vertex, rotating from each outgoing halfedge to the twin of the previous halfedge in its face

        Args:
            vertex (int): vertex index

        Returns:
            list of outgoing halfedges in cyclic order, one per incident face

        Raises:
            TopologyError: if the vertex is isolated, lies on a boundary, or is non-manifold (more than one fan of faces)
        """
        start = self.vertices_to_halfedges[vertex].item()
        if start < 0:
            raise TopologyError(f'vertex {vertex} has no incident faces', [vertex])

        degree = self.vertex_degrees[vertex].item()
        one_ring = [start]
        halfedge = self.halfedges_to_twins[self.halfedge_to_prev(start)].item()
        while halfedge != start:
            if halfedge < 0:
                raise TopologyError(f'one-ring of vertex {vertex} is open (boundary vertex)', [vertex])
            one_ring.append(halfedge)
            halfedge = self.halfedges_to_twins[self.halfedge_to_prev(halfedge)].item()

        if len(one_ring) != degree:
            raise TopologyError(f'one-ring of vertex {vertex} closes after {len(one_ring)} of {degree} incident faces (non-manifold vertex)', [vertex])

        return one_ring

    def vertex_to_star(self, vertex: int) -> List[Tuple[int, int]]:
        """Lists faces incident to a vertex in cyclic order, together with the position (0, 1, 2) of the vertex in each face

        Args:
            vertex (int): vertex index

        Returns:
            list of (face index, local slot) pairs
        """
        return [(halfedge // 3, halfedge % 3) for halfedge in self.vertex_to_one_ring(vertex)]

    def embedding_to_halfedge_vectors(self, fs: Tensor) -> Tensor:
        """Computes vectors pointing from halfedge tails to halfedge tips, where num_halfedges = 3 * num_faces

        Args:
            fs (Tensor): num_vertices * 3 list of vertex positions

        Returns:
            num_halfedges * 3 list of vertex differences
        """
        return fs[..., self.tips_to_halfedges, :] - fs[..., self.tails_to_halfedges, :]

    def halfedge_vectors_to_face_normals(self, es: Tensor, keep_scale: bool = False) -> Tensor:
        """Computes outward pointing face normals, either unit length or scaled by twice the face area

        Args:
            es (Tensor): num_halfedges * 3 list of halfedge vectors

        Returns:
            num_faces * 3 list of face normals
        """
        es_by_face = es[..., self.halfedges_to_faces, :]
        Ns = cross(es_by_face[..., 0, :], -es_by_face[..., 2, :], dim=-1)

        if keep_scale:
            return Ns

        Ns = Ns / norm(Ns, dim=-1, keepdim=True)
        return Ns

    def embedding_to_face_normals(self, fs: Tensor, keep_scale: bool = False) -> Tensor:
        return self.halfedge_vectors_to_face_normals(self.embedding_to_halfedge_vectors(fs), keep_scale)

    def halfedge_vectors_to_metric(self, es: Tensor) -> Tensor:
        """Computes discrete metric (halfedge lengths)"""
        return norm(es, dim=-1)

    def embedding_to_metric(self, fs: Tensor) -> Tensor:
        return self.halfedge_vectors_to_metric(self.embedding_to_halfedge_vectors(fs))

    def metric_to_face_areas(self, ls: Tensor) -> Tensor:
        """Computes face areas using Heron's formula

        Args:
            ls (Tensor): num_halfedges list of halfedge lengths

        Returns:
            num_faces list of face areas
        """
        ls_by_face = ls[..., self.halfedges_to_faces]
        return heron_area(ls_by_face[..., 0], ls_by_face[..., 1], ls_by_face[..., 2])

    def embedding_to_face_areas(self, fs: Tensor) -> Tensor:
        return self.metric_to_face_areas(self.embedding_to_metric(fs))

    def check_face_areas(self, face_As: Tensor, area_tol: float = 0.):
        """Raises DegenerateGeometryError if any face area is at or below area_tol times the mean face area"""
        is_degenerate = ~(face_As > area_tol * face_As.mean())
        if is_degenerate.any():
            idxs = arange(self.num_faces)[is_degenerate].tolist()
            raise DegenerateGeometryError(f'{len(idxs)} face(s) have relative area <= {area_tol}: {idxs[:10]}', idxs)

    def face_areas_to_vertex_areas(self, As: Tensor) -> Tensor:
        """Distributes one third of the area of each face to each of its vertices

        Args:
            As (Tensor): num_faces list of face areas

        Returns:
            num_vertices list of vertex areas
        """
        As_by_halfedges = As.repeat_interleave(3, dim=-1) / 3
        return (self.halfedges_to_tails @ As_by_halfedges.unsqueeze(-1)).squeeze(-1)

    def face_areas_to_mass_matrix(self, As: Tensor) -> Tensor:
        """Computes lumped (diagonal) mass matrix from face areas

        Args:
            As (Tensor): num_faces list of face areas

        Returns:
            num_vertices * num_vertices sparse diagonal mass matrix

        Raises:
            DegenerateGeometryError: if any vertex area is not strictly positive
        """
        vertex_As = self.face_areas_to_vertex_areas(As)
        is_degenerate = ~(vertex_As > 0)
        if is_degenerate.any():
            idxs = arange(self.num_vertices)[is_degenerate].tolist()
            raise DegenerateGeometryError(f'{len(idxs)} vertex mass(es) are not positive: {idxs[:10]}', idxs)

        indices = arange(self.num_vertices, device=As.device)
        indices = stack([indices, indices])
        M = sparse_coo_tensor(indices, vertex_As, size=(self.num_vertices, self.num_vertices), is_coalesced=True)
        return M

    def embedding_to_mass_matrix(self, fs: Tensor) -> Tensor:
        return self.face_areas_to_mass_matrix(self.embedding_to_face_areas(fs))

    def embedding_to_laplacian(self, fs: Tensor, face_As: Optional[Tensor] = None, area_tol: float = 0., verbose: bool = False) -> Tensor:
        """Computes cotan Laplacian by walking the one-ring of every vertex

        Note:
            For each outgoing halfedge v -> o, the entry L[v, o] is the average of the cotangents of the angles at l and r, the vertices opposite the edge in its two faces. Diagonal entries are negated row sums, so L is negative semidefinite.

        Args:
            fs (Tensor): num_vertices * 3 list of vertex positions
            face_As (Tensor): num_faces list of face areas, computed from fs if not provided
            area_tol (float): faces with area at or below area_tol times the mean face area are rejected
            verbose (bool): whether or not to show a progress bar over vertices

        Returns:
            num_vertices * num_vertices sparse symmetric Laplacian with zero row sums
        """
        if face_As is None:
            face_As = self.embedding_to_face_areas(fs)
        self.check_face_areas(face_As, area_tol)

        tips = self.tips_to_halfedges.tolist()
        tails = self.tails_to_halfedges.tolist()
        twins = self.halfedges_to_twins.tolist()

        iterator = range(self.num_vertices)
        if verbose:
            iterator = tqdm(iterator, desc='laplacian')

        v_idxs, o_idxs, l_idxs, r_idxs = [], [], [], []
        for v in iterator:
            for halfedge in self.vertex_to_one_ring(v):
                v_idxs.append(v)
                o_idxs.append(tips[halfedge])
                l_idxs.append(tails[self.halfedge_to_prev(halfedge)])
                r_idxs.append(tails[self.halfedge_to_prev(twins[halfedge])])

        v_idxs, o_idxs, l_idxs, r_idxs = map(tensor, (v_idxs, o_idxs, l_idxs, r_idxs))
        cot_ls = cotan(fs[v_idxs] - fs[l_idxs], fs[o_idxs] - fs[l_idxs])
        cot_rs = cotan(fs[v_idxs] - fs[r_idxs], fs[o_idxs] - fs[r_idxs])
        off_diag_values = (cot_ls + cot_rs) / 2

        diag_values = -zeros(self.num_vertices, dtype=fs.dtype, device=fs.device).index_add_(0, v_idxs, off_diag_values)
        diag_idxs = arange(self.num_vertices)
        indices = stack([cat([v_idxs, diag_idxs]), cat([o_idxs, diag_idxs])])
        L = sparse_coo_tensor(indices, cat([off_diag_values, diag_values]), (self.num_vertices, self.num_vertices)).coalesce()

        _LOGGER.debug('Laplacian: %d vertices, %d nonzeros', self.num_vertices, L._nnz())
        return L

    def metric_to_average_edge_length(self, ls: Tensor) -> float:
        """Computes mean edge length as the sum of half perimeters over 1.5 * num_faces, which counts each edge of a closed mesh once"""
        return (ls.sum() / 2 / (1.5 * self.num_faces)).item()

    def embedding_to_average_edge_length(self, fs: Tensor) -> float:
        return self.metric_to_average_edge_length(self.embedding_to_metric(fs))

    def embedding_and_vertex_values_to_face_grads(self, fs: Tensor, phis: Tensor, face_As: Optional[Tensor] = None, area_tol: float = 0.) -> Tensor:
        """Computes facewise gradient of a function defined on vertices

        Note:
            The basis vector of vertex i is N x e_i / |e_i|, the unit in-plane perpendicular of the edge e_i opposite vertex i. Weighting it by |e_i| / (2 * area) makes the gradient exact for linear functions.

        Args:
            fs (Tensor): num_vertices * 3 list of vertex positions
            phis (Tensor): batch_dims * num_vertices list of function values per vertex
            face_As (Tensor): num_faces list of face areas, computed from fs if not provided
            area_tol (float): faces with area at or below area_tol times the mean face area are rejected

        Returns:
            batch_dims * num_faces * 3 list of gradients per face
        """
        es = self.embedding_to_halfedge_vectors(fs)
        if face_As is None:
            face_As = self.metric_to_face_areas(self.halfedge_vectors_to_metric(es))
        self.check_face_areas(face_As, area_tol)

        Ns = self.halfedge_vectors_to_face_normals(es)
        opp_es_by_face = es[self.halfedges_to_faces][:, tensor([1, 2, 0]), :]
        opp_ls_by_face = norm(opp_es_by_face, dim=-1, keepdim=True)
        basis_vectors = cross(Ns.unsqueeze(-2), opp_es_by_face / opp_ls_by_face, dim=-1)
        basis_grads = opp_ls_by_face * basis_vectors / (2 * face_As.reshape(self.num_faces, 1, 1))

        phis_by_face = phis[..., self.faces]
        grad_phis = (phis_by_face.unsqueeze(-1) * basis_grads).sum(dim=-2)
        return grad_phis

    def face_vectors_to_unit_face_vectors(self, vs: Tensor, tol: float = 1e-10, policy: str = 'raise') -> Tensor:
        """Rescales each face vector to unit length

        Note:
            A face vector is singular when its norm is at or below tol times the largest norm in its field (per batch element)

        Args:
            vs (Tensor): batch_dims * num_faces * 3 list of vectors per face
            tol (float): relative norm threshold below which vectors are singular
            policy (str): whether singular vectors raise SingularFieldError ('raise') or are replaced by zero vectors ('zero')

        Returns:
            batch_dims * num_faces * 3 list of unit (or zero) vectors per face
        """
        if policy not in ('raise', 'zero'):
            raise ValueError(f"policy must be 'raise' or 'zero', got {policy!r}")

        ns = norm(vs, dim=-1, keepdim=True)
        is_singular = ~(ns > tol * ns.amax(dim=-2, keepdim=True))
        if is_singular.any():
            idxs = arange(self.num_faces)[is_singular.squeeze(-1).reshape(-1, self.num_faces).any(dim=0)].tolist()
            if policy == 'raise':
                raise SingularFieldError(f'{len(idxs)} face vector(s) have relative norm <= {tol}: {idxs[:10]}', idxs)
            _LOGGER.warning('Replacing %d singular face vector(s) with zero vectors', len(idxs))

        return where(is_singular, zeros_like(vs), vs / where(is_singular, ones(1, dtype=ns.dtype), ns))

    def embedding_and_face_vectors_to_vertex_divs(self, fs: Tensor, vs: Tensor) -> Tensor:
        """Computes integrated vertexwise divergence of a tangent vector field defined on faces

        Note:
            Each corner (vertex p_k of a face) contributes (cot_left * (e_right . X) + cot_right * (e_left . X)) / 2, where e_right = p_{k+1} - p_k and e_left = p_{k+2} - p_k point away from the vertex and cot_left, cot_right are cotangents of the angles opposite them

        Args:
            fs (Tensor): num_vertices * 3 list of vertex positions
            vs (Tensor): batch_dims * num_faces * 3 list of tangent vectors per face

        Returns:
            batch_dims * num_vertices list of divergences per vertex
        """
        es_by_face = self.embedding_to_halfedge_vectors(fs)[self.halfedges_to_faces]
        e_rights = es_by_face
        e_lefts = -es_by_face[:, tensor([2, 0, 1]), :]

        corner_cots = cotan(e_rights, e_lefts)
        cot_lefts = corner_cots[:, tensor([2, 0, 1])]
        cot_rights = corner_cots[:, tensor([1, 2, 0])]

        vs_by_corner = vs.unsqueeze(-2)
        corner_divs = (cot_lefts * (e_rights * vs_by_corner).sum(dim=-1) + cot_rights * (e_lefts * vs_by_corner).sum(dim=-1)) / 2

        batch_dims = corner_divs.shape[:-2]
        flat_corner_divs = corner_divs.reshape(-1, self.num_halfedges)
        div_vs = (self.halfedges_to_tails @ flat_corner_divs.T).T
        return div_vs.reshape(batch_dims + (self.num_vertices,))

    def laplacian_to_definite_laplacian(self, L: Tensor, idx: int = 0) -> Tensor:
        """Removes specified row and column of Laplacian matrix, eliminating the zero eigenvalue

        Args:
            L (Tensor): num_vertices * num_vertices sparse Laplacian matrix
            idx (int): index of row and column to be removed

        Returns:
            (num_vertices - 1) * (num_vertices - 1) block of sparse Laplacian matrix
        """
        indices = L.indices()
        is_free = (indices != idx).all(dim=0)
        free_indices = indices[:, is_free]
        free_indices = free_indices - (free_indices > idx).to(int)

        free_values = L.values()[is_free]
        L_def = sparse_coo_tensor(free_indices, free_values, (self.num_vertices - 1, self.num_vertices - 1), is_coalesced=True)
        return L_def

    def laplacian_and_mass_matrix_to_heat_solver(self, L: Tensor, M: Tensor, t: float, residual_tol: float = 1e-6) -> Callable[[Tensor], Tensor]:
        """Factorizes the backward Euler heat system (M - t * L) u = u_0

        Args:
            L (Tensor): num_vertices * num_vertices sparse Laplacian
            M (Tensor): num_vertices * num_vertices sparse mass matrix
            t (float): diffusion time

        Returns:
            Function mapping a num_vertices * num_sources initial condition to heat after time t
        """
        if not t > 0 or not isfinite(t):
            raise ValueError(f'diffusion time must be positive and finite, got {t!r}')

        A = (M - t * L).coalesce()
        _LOGGER.debug('Heat system: t=%g, %d nonzeros', t, A._nnz())
        return factorize(A, residual_tol=residual_tol)

    def laplacian_to_poisson_solver(self, L: Tensor, pinned_vertex: int = 0, residual_tol: float = 1e-6) -> Callable[[Tensor], Tensor]:
        """Factorizes the Laplacian for Poisson solves L phi = b, fixing phi to 0 at a pinned vertex

        Note:
            The Laplacian is negative semidefinite with constants in its kernel, so the block without the pinned vertex is negated before Cholesky factorization

        Args:
            L (Tensor): num_vertices * num_vertices sparse Laplacian
            pinned_vertex (int): vertex removed from the system

        Returns:
            Function mapping a num_vertices * num_sources right-hand side to a num_vertices * num_sources solution

        Raises:
            FactorizationError: if the mesh has more than one connected component or the factorization fails
        """
        if self.num_components > 1:
            raise FactorizationError(f'Laplacian is singular: mesh has {self.num_components} connected components')
        if not 0 <= pinned_vertex < self.num_vertices:
            raise ValueError(f'pinned vertex {pinned_vertex} out of range')

        L_def = self.laplacian_to_definite_laplacian(L, pinned_vertex)
        L_def_solver = factorize((-L_def).coalesce(), residual_tol=residual_tol)
        is_free = arange(self.num_vertices) != pinned_vertex

        def poisson_solver(B: Tensor) -> Tensor:
            phis = zeros_like(B)
            phis[is_free] = -L_def_solver(B[is_free])
            return phis

        return poisson_solver

    def embedding_to_heat_method_solver(self, fs: Tensor, diff_coeff: Optional[float] = None, config: Optional[HeatMethodConfig] = None) -> Callable[[Tensor], Tensor]:
        """Precomputes data needed for heat method solver, which computes approximate geodesic distances

        Args:
            fs (Tensor): num_vertices * 3 list of vertex positions
            diff_coeff (float): multiplier m of the diffusion time m * h^2, overrides config.diff_coeff
            config (HeatMethodConfig): numerical settings, defaults to HeatMethodConfig()

        Returns:
            Function mapping a num_vertices (or num_vertices * num_sources) initial condition to geodesic distances of the same shape, defined up to an additive constant per source
        """
        if config is None:
            config = HeatMethodConfig()
        if diff_coeff is None:
            diff_coeff = config.diff_coeff
        if not diff_coeff > 0 or not isfinite(diff_coeff):
            raise ValueError(f'diff_coeff must be positive, got {diff_coeff!r}')

        ls = self.embedding_to_metric(fs)
        face_As = self.metric_to_face_areas(ls)
        self.check_face_areas(face_As, config.area_tol)

        M = self.face_areas_to_mass_matrix(face_As)
        L = self.embedding_to_laplacian(fs, face_As=face_As, area_tol=config.area_tol, verbose=config.verbose)

        h = self.metric_to_average_edge_length(ls)
        t = diff_coeff * h ** 2
        _LOGGER.debug('Average edge length %g, diffusion time %g', h, t)

        heat_solver = self.laplacian_and_mass_matrix_to_heat_solver(L, M, t, config.residual_tol)
        poisson_solver = self.laplacian_to_poisson_solver(L, config.pinned_vertex, config.residual_tol)

        def heat_method_solver(u_0s: Tensor) -> Tensor:
            """Computes geodesic distance from the heat sources described by initial conditions

            Args:
                u_0s (Tensor): num_vertices or num_vertices * num_sources list of initial heat values

            Returns:
                geodesic distances with the same shape as u_0s
            """
            if u_0s.shape[0] != self.num_vertices or u_0s.dim() > 2:
                raise ValueError(f'initial conditions must have shape ({self.num_vertices},) or ({self.num_vertices}, num_sources), got {tuple(u_0s.shape)}')

            is_single = u_0s.dim() == 1
            u_0s = u_0s.to(fs).reshape(self.num_vertices, -1)

            u_ts = heat_solver(u_0s)
            grad_u_ts = self.embedding_and_vertex_values_to_face_grads(fs, u_ts.T, face_As)
            Xs = self.face_vectors_to_unit_face_vectors(-grad_u_ts, config.zero_vector_tol, config.zero_vector_policy)
            div_Xs = self.embedding_and_face_vectors_to_vertex_divs(fs, Xs)
            dists = poisson_solver(div_Xs.T.contiguous())

            if is_single:
                return dists[:, 0]

            return dists

        return heat_method_solver
