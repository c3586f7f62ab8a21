"""
Exceptions raised while rendering samples

SampleError and its subclasses are scoped to one sample: the sample
compiler catches them, renders an error block in place of the sample and
carries on with the rest of the document (unless strict mode is on).
"""

from typing import Optional


class SampleError(Exception):
    """Rendering of a single sample failed"""

    def __init__(self, message: str, sample: Optional[str] = None) -> None:
        super().__init__(message)
        self.sample = sample


class DirectiveError(SampleError):
    """Unknown directive or invalid directive value (logged, never fatal)"""
    pass


class SpanConflictError(SampleError):
    """Two classification lists disagree about a token boundary"""
    pass


class QueryMarkerError(SampleError):
    """More than one query echo would be pending on the same line"""
    pass


class ProviderError(SampleError):
    """An analysis provider call raised"""
    pass


class StoreError(Exception):
    """Reservation tokens were used outside the reserve/resolve contract"""
    pass
