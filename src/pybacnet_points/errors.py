"""Clear exceptions for pybacnet-points: empty identifiers, bad template patterns, tagging failures."""


class PyBACnetPointsError(Exception):
    """Base exception for pybacnet-points."""

    pass


class EmptyIdentifierError(PyBACnetPointsError):
    """Raised when a point identifier is empty or whitespace-only."""

    def __init__(self, identifier: str | None, message: str | None = None) -> None:
        self.identifier = identifier
        self._msg = message or f"Point identifier cannot be empty: {identifier!r}"
        super().__init__(self._msg)


class InvalidSignaturePattern(PyBACnetPointsError):
    """Raised when an authored template pattern is malformed (a configuration defect)."""

    def __init__(self, pattern: str, message: str | None = None) -> None:
        self.pattern = pattern
        self._msg = message or f"Invalid signature pattern: {pattern!r}"
        super().__init__(self._msg)


class UnknownTemplateError(PyBACnetPointsError):
    """Raised when the template library has no template for an equipment type."""

    def __init__(self, equipment_type: str, message: str | None = None) -> None:
        self.equipment_type = equipment_type
        self._msg = message or f"No template for equipment type: {equipment_type!r}"
        super().__init__(self._msg)


class TagGenerationFailure(PyBACnetPointsError):
    """Internal tagging failure; the tagger downgrades it to a minimal tag set."""

    def __init__(
        self,
        point_name: str,
        *,
        stage: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.point_name = point_name
        self.stage = stage
        self.cause = cause
        where = f" in {stage} stage" if stage else ""
        super().__init__(f"Tag generation failed for {point_name!r}{where}: {cause}")
