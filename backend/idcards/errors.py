class CardRenderError(Exception):
    def __init__(self, detail: str, *, status_code: int = 400):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class PackingPreconditionError(CardRenderError):
    """Raised before any card is rendered when a print request cannot start."""
