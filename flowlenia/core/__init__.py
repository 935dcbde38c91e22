"""Core solver - constants, configuration, kernels, mass field and morphology."""

from .constants import *
from .errors import FlowLeniaError, ConfigurationError, KernelError, MassConservationError
from .config import (
    FieldParams, TrackingParams, EvolutionParams, EnvironmentParams,
    launch_params_from_env
)
from .utils import (
    wrap_angle, angle_difference, toroidal_delta, toroidal_distance,
    periodic_distance
)
from .kernels import Kernel, generate_kernel, KERNEL_TYPES
from .mass_field import MassField
from .morphology import MorphologyBlender, MorphologyMaps
