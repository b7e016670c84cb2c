from .noise import NoiseInjector, RandomSource, UniformSource
from .plant_process import PlantProcess, ProcessConfig, disturbance_m3s
from .tank import TankProcess, integrate, outflow

__all__ = [
    "NoiseInjector",
    "RandomSource",
    "UniformSource",
    "PlantProcess",
    "ProcessConfig",
    "disturbance_m3s",
    "TankProcess",
    "integrate",
    "outflow",
]
