"""Dataclasses describing risk coach configuration files."""

from . import models
from .models import *  # noqa: F401,F403

__all__ = models.__all__
