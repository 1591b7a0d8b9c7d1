"""
Module containing shared utilities.
"""
from .resources import RESOURCES, jit, LocalignWarning, ScoringWarning

__all__ = ['RESOURCES', 'jit', 'LocalignWarning', 'ScoringWarning']
