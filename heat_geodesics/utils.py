from cholespy import CholeskySolverD, MatrixType
from heat_geodesics.errors import FactorizationError, SolveError
import logging
import torch
from torch import arange, chunk, float64, int32, isfinite, sparse_coo_tensor, stack, Tensor, tensor, zeros, zeros_like
from torch.autograd import Function
from torch.linalg import norm
from trimesh import load_mesh
from trimesh.creation import icosphere
from typing import Callable, Tuple


_LOGGER = logging.getLogger(__name__)


class CholeskySolver:
    """Sparse Cholesky factorization of a symmetric positive definite matrix, with checked solves"""
    def __init__(self, A: sparse_coo_tensor, residual_tol: float = 1e-6):
        """
        Args:
            A (sparse_coo_tensor): sparse n * n symmetric positive definite matrix
            residual_tol (float): largest accepted relative residual |AX - B| / |B| of a solve

        Raises:
            FactorizationError: if A has non-finite entries, a non-positive diagonal entry, or is rejected by the factorization
        """
        A = A.coalesce().cpu()
        self.A = A
        self.residual_tol = residual_tol
        n = A.shape[0]

        indices = A.indices()
        values = A.values().to(float64)
        if not isfinite(values).all():
            raise FactorizationError('matrix has non-finite entries')

        is_diag = indices[0] == indices[1]
        diag = zeros(n, dtype=float64).index_add_(0, indices[0, is_diag], values[is_diag])
        if (diag <= 0).any():
            idxs = arange(n)[diag <= 0].tolist()
            raise FactorizationError(f'matrix is not positive definite: non-positive diagonal at rows {idxs[:10]}')

        rows = indices[0].to(int32).contiguous()
        cols = indices[1].to(int32).contiguous()
        try:
            self.chol_solver = CholeskySolverD(n, rows, cols, values.contiguous(), MatrixType.COO)
        except (RuntimeError, ValueError) as e:
            raise FactorizationError(f'Cholesky factorization failed: {e}') from e

        _LOGGER.debug('Factorized %d x %d matrix with %d nonzeros', n, n, len(values))

    def _solve(self, B: Tensor) -> Tensor:
        B = B.contiguous()
        X = zeros_like(B)
        self.chol_solver.solve(B, X)
        return X

    def solve(self, B: Tensor) -> Tensor:
        """Solves AX = B for a dense n * m right-hand side

        Raises:
            SolveError: if the solution is non-finite or its relative residual exceeds residual_tol
        """
        B = B.detach().to(float64).cpu().clone()
        num_rhs = B.shape[-1]

        if num_rhs > 128:
            X = torch.cat([self._solve(B_batch) for B_batch in chunk(B, (num_rhs // 128) + 1, dim=-1)], dim=-1)
        else:
            X = self._solve(B)

        if not isfinite(X).all():
            raise SolveError('solve produced non-finite values')

        residual = norm(self.A @ X - B)
        if residual > self.residual_tol * norm(B):
            raise SolveError(f'relative residual {(residual / norm(B)).item():.3e} exceeds {self.residual_tol:.1e}')

        return X


class FactorizedSolve(Function):
    @staticmethod
    def forward(ctx, B: Tensor, chol_solver: CholeskySolver):
        ctx.chol_solver = chol_solver
        X = chol_solver.solve(B)
        return X

    @staticmethod
    def backward(ctx, grad_outputs: Tensor):
        chol_solver = ctx.chol_solver
        grad_inputs = chol_solver.solve(grad_outputs)
        return grad_inputs, None


def factorize(A: sparse_coo_tensor, residual_tol: float = 1e-6) -> Callable[[Tensor], Tensor]:
    """Performs sparse Cholesky factorization to solve linear system AX = B

    Note:
        If m > 128, the right hand side will be split into chunks, and each chunk will be processed separately.

    Args:
        A (sparse_coo_tensor): sparse n * n symmetric positive definite matrix
        residual_tol (float): largest accepted relative residual of each solve

    Returns:
        Function mapping a dense n * m right-hand side matrix to a dense n * m solution matrix

    Raises:
        FactorizationError: if A is not numerically symmetric positive definite
    """
    chol_solver = CholeskySolver(A, residual_tol)

    def solve(B: Tensor) -> Tensor:
        return FactorizedSolve.apply(B, chol_solver)

    return solve


def create_rectangular_mesh(num_rows: int, num_cols: int) -> Tuple[Tensor, Tensor]:
    """Creates a planar triangle mesh of a rectangle with unit spacing (a mesh with boundary)

    Args:
        num_rows (int): number of vertices in vertical direction
        num_cols (int): number of vertices in horizontal direction

    Returns:
        (num_rows * num_cols) * 3 list of vertex positions and ((num_rows - 1) * 2 * (num_cols - 1)) * 3 list of vertices per face
    """
    xs = arange(num_cols, dtype=float64).repeat(num_rows)
    ys = arange(num_rows, dtype=float64).repeat_interleave(num_cols)
    vertices = stack([xs, ys, zeros_like(xs)], dim=-1)

    faces = []
    for i in range(num_rows - 1):
        for j in range(num_cols - 1):
            faces += [[num_cols * i + j, num_cols * i + j + 1, num_cols * (i + 1) + j]]
            faces += [[num_cols * i + j + 1, num_cols * (i + 1) + j + 1, num_cols * (i + 1) + j]]

    return vertices, tensor(faces)


def create_toroidal_mesh(num_rows: int, num_cols: int, major_radius: float, minor_radius: float) -> Tuple[Tensor, Tensor]:
    """Creates a closed triangle mesh of a torus of revolution around the z axis

    Args:
        num_rows (int): number of vertices around the tube
        num_cols (int): number of vertices around the z axis
        major_radius (float): distance from the z axis to the center of the tube
        minor_radius (float): radius of the tube

    Returns:
        (num_rows * num_cols) * 3 list of vertex positions and (2 * num_rows * num_cols) * 3 list of vertices per face
    """
    thetas = 2 * torch.pi * arange(num_cols, dtype=float64).repeat(num_rows) / num_cols
    phis = 2 * torch.pi * arange(num_rows, dtype=float64).repeat_interleave(num_cols) / num_rows
    radii = major_radius + minor_radius * torch.cos(phis)
    vertices = stack([radii * torch.cos(thetas), radii * torch.sin(thetas), minor_radius * torch.sin(phis)], dim=-1)

    def idx(i, j):
        return num_cols * (i % num_rows) + (j % num_cols)

    faces = []
    for i in range(num_rows):
        for j in range(num_cols):
            faces += [[idx(i, j), idx(i, j + 1), idx(i + 1, j)]]
            faces += [[idx(i, j + 1), idx(i + 1, j + 1), idx(i + 1, j)]]

    return vertices, tensor(faces)


def create_icosahedron(radius: float = 1.) -> Tuple[Tensor, Tensor]:
    """Creates a regular icosahedron centered at the origin with outward oriented faces

    Note:
        Vertex 0 has neighbors 1, 5, 7, 10, 11; vertex 3 is its antipode

    Args:
        radius (float): circumradius

    Returns:
        12 * 3 list of vertex positions and 20 * 3 list of vertices per face
    """
    p = (1 + 5 ** 0.5) / 2
    vertices = tensor([
        [-1, p, 0], [1, p, 0], [-1, -p, 0], [1, -p, 0],
        [0, -1, p], [0, 1, p], [0, -1, -p], [0, 1, -p],
        [p, 0, -1], [p, 0, 1], [-p, 0, -1], [-p, 0, 1]
    ], dtype=float64)
    vertices = radius * vertices / norm(vertices, dim=-1, keepdim=True)

    faces = tensor([
        [0, 11, 5], [0, 5, 1], [0, 1, 7], [0, 7, 10], [0, 10, 11],
        [1, 5, 9], [5, 11, 4], [11, 10, 2], [10, 7, 6], [7, 1, 8],
        [3, 9, 4], [3, 4, 2], [3, 2, 6], [3, 6, 8], [3, 8, 9],
        [4, 9, 5], [2, 4, 11], [6, 2, 10], [8, 6, 7], [9, 8, 1]
    ])
    return vertices, faces


def create_icosphere(subdivisions: int, radius: float = 1.) -> Tuple[Tensor, Tensor]:
    """Creates a closed triangle mesh of a sphere by subdividing an icosahedron

    Args:
        subdivisions (int): number of loop subdivisions, each multiplying the face count by 4
        radius (float): sphere radius

    Returns:
        num_vertices * 3 list of vertex positions and num_faces * 3 list of vertices per face
    """
    mesh = icosphere(subdivisions=subdivisions, radius=radius)
    return tensor(mesh.vertices, dtype=float64), tensor(mesh.faces)


def load_obj(file_obj) -> Tuple[Tensor, Tensor]:
    """Loads mesh data from an obj file, keeping the vertex order of the file

    Args:
        file_obj: path or file-like object

    Returns:
        num_vertices * 3 list of vertex positions and num_faces * 3 list of vertices per face
    """
    mesh = load_mesh(file_obj, file_type='obj', process=False, maintain_order=True)
    return tensor(mesh.vertices, dtype=float64), tensor(mesh.faces)
