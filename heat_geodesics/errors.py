class HeatMethodError(Exception):
    """Base class for failures of a geodesic distance query"""


class DegenerateGeometryError(HeatMethodError):
    """Raised when zero-area faces or vertices would feed an area or cotangent computation"""
    def __init__(self, message: str, idxs=None):
        HeatMethodError.__init__(self, message)
        self.idxs = idxs


class TopologyError(HeatMethodError):
    """Raised when the one-ring of a vertex is open or non-manifold, or faces are inconsistently oriented"""
    def __init__(self, message: str, idxs=None):
        HeatMethodError.__init__(self, message)
        self.idxs = idxs


class FactorizationError(HeatMethodError):
    """Raised when a sparse matrix cannot be Cholesky factorized"""


class SolveError(HeatMethodError):
    """Raised when a factorized solve produces non-finite values or a large residual"""


class SingularFieldError(HeatMethodError):
    """Raised when a face vector of zero length cannot be normalized"""
    def __init__(self, message: str, idxs=None):
        HeatMethodError.__init__(self, message)
        self.idxs = idxs
