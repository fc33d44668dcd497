from dataclasses import dataclass, replace
import logging
import os
from typing import Callable, TypeVar, Union


_LOGGER = logging.getLogger('heat_geodesics')

ZERO_VECTOR_POLICIES = ('raise', 'zero')
TRUE_STRINGS = ('1', 'on', 't', 'true', 'y', 'yes')
FALSE_STRINGS = ('0', 'f', 'false', 'n', 'no', 'off')

T = TypeVar('T')


def set_log_level(level: Union[int, str] = 'WARNING'):
    """Sets level of the package logger

    Note:
        Unknown level names fall back to WARNING

    Args:
        level (Union[int, str]): logging level, either a number or a name such as 'debug'
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.strip().upper())
        if not isinstance(level, int):
            level = logging.WARNING

    _LOGGER.setLevel(level)


set_log_level(os.environ.get('HEAT_GEODESICS_LOGLEVEL', 'WARNING'))


def env_to_value(varname: str, default: T, parse: Callable[[str], T]) -> T:
    """Parses an environment variable, returning default if it is unset"""
    value = os.environ.get(varname)
    if value is None:
        return default

    return parse(value.strip())


def string_to_bool(value: str) -> bool:
    """Interprets strings such as 'yes', 'off' or '1' as booleans

    Raises:
        ValueError: if the string is not a recognized truth value
    """
    value = value.lower()
    if value in TRUE_STRINGS:
        return True
    if value in FALSE_STRINGS:
        return False

    raise ValueError(f'invalid truth value {value!r}')


def bool_env(varname: str, default: bool) -> bool:
    return env_to_value(varname, default, string_to_bool)


def float_env(varname: str, default: float) -> float:
    return env_to_value(varname, default, float)


def int_env(varname: str, default: int) -> int:
    return env_to_value(varname, default, int)


@dataclass(frozen=True)
class HeatMethodConfig:
    """Numerical settings of a heat method query

    Args:
        diff_coeff (float): multiplier m of the diffusion time m * h^2, where h is the average edge length
        area_tol (float): faces with area at or below area_tol times the mean face area are degenerate
        zero_vector_tol (float): face vectors with norm at or below zero_vector_tol times the largest norm of their field are singular
        zero_vector_policy (str): 'raise' to abort on singular face vectors, 'zero' to replace them with zero vectors
        residual_tol (float): largest accepted relative residual of a factorized solve
        pinned_vertex (int): vertex whose distance is fixed to 0 in the Poisson solve
        verbose (bool): whether or not to show a progress bar while assembling the Laplacian
    """
    diff_coeff: float = 1.
    area_tol: float = 1e-12
    zero_vector_tol: float = 1e-10
    zero_vector_policy: str = 'raise'
    residual_tol: float = 1e-6
    pinned_vertex: int = 0
    verbose: bool = False

    def __post_init__(self):
        if not 0 < self.diff_coeff < float('inf'):
            raise ValueError(f'diff_coeff must be positive and finite, got {self.diff_coeff!r}')
        if self.zero_vector_policy not in ZERO_VECTOR_POLICIES:
            raise ValueError(f'zero_vector_policy must be one of {ZERO_VECTOR_POLICIES}, got {self.zero_vector_policy!r}')
        if self.area_tol < 0 or self.zero_vector_tol < 0:
            raise ValueError('area_tol and zero_vector_tol must be nonnegative')
        if not self.residual_tol > 0:
            raise ValueError(f'residual_tol must be positive, got {self.residual_tol!r}')

    @classmethod
    def from_env(cls, **overrides) -> 'HeatMethodConfig':
        """Reads settings from HEAT_GEODESICS_* environment variables

        Args:
            overrides: field values taking precedence over the environment

        Returns:
            validated config
        """
        defaults = cls()
        config = cls(
            diff_coeff=float_env('HEAT_GEODESICS_DIFF_COEFF', defaults.diff_coeff),
            area_tol=float_env('HEAT_GEODESICS_AREA_TOL', defaults.area_tol),
            zero_vector_tol=float_env('HEAT_GEODESICS_ZERO_VECTOR_TOL', defaults.zero_vector_tol),
            zero_vector_policy=env_to_value('HEAT_GEODESICS_ZERO_VECTOR_POLICY', defaults.zero_vector_policy, str.lower),
            residual_tol=float_env('HEAT_GEODESICS_RESIDUAL_TOL', defaults.residual_tol),
            pinned_vertex=int_env('HEAT_GEODESICS_PINNED_VERTEX', defaults.pinned_vertex),
            verbose=bool_env('HEAT_GEODESICS_VERBOSE', defaults.verbose)
        )
        config = replace(config, **overrides)
        _LOGGER.debug('Heat method config: %s', config)
        return config
