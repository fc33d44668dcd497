from torch import as_tensor, clamp, float64, sqrt, Tensor
from torch.linalg import cross, norm


def to_point(p) -> Tensor:
    """Embeds a mesh point as a float64 3-vector

    Args:
        p: length 3 sequence, array or tensor of coordinates

    Returns:
        float64 tensor of shape (3,)
    """
    p = as_tensor(p, dtype=float64)
    if p.shape != (3,):
        raise ValueError(f'expected a point with 3 coordinates, got shape {tuple(p.shape)}')
    return p


def cotan(v0: Tensor, v1: Tensor) -> Tensor:
    """Computes cotangent of angle between two vectors as cos / sin = dot / |cross|

    Note:
        Diverges as the angle approaches 0 or pi; callers are responsible for rejecting degenerate triangles

    Args:
        v0 (Tensor): batch_dims * 3 list of vectors
        v1 (Tensor): batch_dims * 3 list of vectors

    Returns:
        batch_dims list of cotangents
    """
    return (v0 * v1).sum(dim=-1) / norm(cross(v0, v1, dim=-1), dim=-1)


def heron_area(l_0: Tensor, l_1: Tensor, l_2: Tensor) -> Tensor:
    """Computes triangle areas from edge lengths using Heron's formula

    Note:
        The radicand is clamped at zero, so degenerate (collinear) triangles have area 0 instead of NaN

    Args:
        l_0 (Tensor): batch_dims list of edge lengths
        l_1 (Tensor): batch_dims list of edge lengths
        l_2 (Tensor): batch_dims list of edge lengths

    Returns:
        batch_dims list of areas
    """
    s = (l_0 + l_1 + l_2) / 2
    return sqrt(clamp(s * (s - l_0) * (s - l_1) * (s - l_2), min=0))
