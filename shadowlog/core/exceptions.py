class ShadowLogError(Exception):
    """Base class for application errors raised below the HTTP layer."""
    pass


class AnalysisError(ShadowLogError):
    """AI provider call failed or returned content that could not be parsed."""

    def __init__(self, kind: str, message: str):
        super().__init__(f"{kind}: {message}")
        self.kind = kind


class ProviderNotConfiguredError(ShadowLogError):
    """No Gemini credentials; features without a neutral default must refuse."""
    pass
