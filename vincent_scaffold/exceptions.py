"""Exception types raised by the Vincent scaffold CLI and e2e harness."""

__all__ = [
    "VincentScaffoldError",
    "ProjectConfigError",
    "TemplateError",
    "PackageDetectionError",
    "BuildError",
    "DeployError",
    "EnvironmentConfigError",
    "UnsupportedParameterTypeError",
    "ChainEventError",
    "FundingError",
    "StateSaveError",
]


class VincentScaffoldError(Exception):
    """Base class for all scaffold errors."""
    pass


class ProjectConfigError(VincentScaffoldError):
    """Raised when ``vincent.json`` is missing or cannot be parsed."""
    pass


class TemplateError(VincentScaffoldError):
    """Raised when a template type is unknown, incomplete or cannot be rendered."""
    pass


class PackageDetectionError(VincentScaffoldError):
    """Raised when a directory is not a Vincent ability or policy package."""
    pass


class BuildError(VincentScaffoldError):
    """Raised when bundling a lit action fails."""
    pass


class DeployError(VincentScaffoldError):
    """Raised when uploading a lit action to IPFS fails or its CID mismatches."""
    pass


class EnvironmentConfigError(VincentScaffoldError, ValueError):
    """Raised when the e2e environment variables fail validation."""

    def __init__(self, issues: list[str]) -> None:
        self.issues = list(issues)
        detail = "; ".join(self.issues) if self.issues else "invalid environment"
        super().__init__(f"Environment validation failed: {detail}")


class UnsupportedParameterTypeError(VincentScaffoldError, ValueError):
    """Raised for policy parameter type ids outside the known table."""

    def __init__(self, param_type: object) -> None:
        self.param_type = param_type
        super().__init__(f"Unsupported parameter type: {param_type}")


class ChainEventError(VincentScaffoldError):
    """Raised when an expected event is missing from a transaction receipt."""
    pass


class FundingError(VincentScaffoldError):
    """Raised when the funder wallet cannot cover test account funding."""
    pass


class StateSaveError(VincentScaffoldError, OSError):
    """Raised when the e2e state document cannot be written."""
    pass
