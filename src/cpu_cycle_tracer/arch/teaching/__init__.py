# cpu_cycle_tracer/arch/teaching/__init__.py
"""
Teaching CPU Architecture Package
"""
from .cpu import TeachingCpu
from .state import TeachingCpuState
