from heat_geodesics.config import HeatMethodConfig
from heat_geodesics.errors import DegenerateGeometryError, FactorizationError, HeatMethodError, SingularFieldError, SolveError, TopologyError
from heat_geodesics.heat_method import calibrate_distances, heat_method_geodesic, points_to_source_vertices, sources_to_initial_conditions
from heat_geodesics.manifold import Manifold
