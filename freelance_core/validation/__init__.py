"""Entity validation package."""

from freelance_core.validation.validator import (
    EntityValidationError,
    EntityValidator,
)

__all__ = ["EntityValidationError", "EntityValidator"]
