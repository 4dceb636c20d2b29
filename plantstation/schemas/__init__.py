"""
Schemas Module
==============

Pydantic models for request validation.
"""

from plantstation.schemas.config import PlantConfigUpdate

__all__ = ["PlantConfigUpdate"]
