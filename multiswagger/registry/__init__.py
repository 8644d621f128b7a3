"""Spec registry: the set of APIs currently shown in the portal."""
from .catalog import SpecRegistry
from .models import APIRecord

__all__ = ["APIRecord", "SpecRegistry"]
