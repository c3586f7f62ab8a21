"""
Placeholder result store

The markdown converter escapes and rewraps whatever HTML a preprocessor
hands it, so rendered samples never travel through the converter. Each
sample is swapped for an opaque token before conversion, its markup is
reserved here under that token, and the tokens are swapped back for the
markup once the converter has finished.

A store serves exactly one conversion: reserve() any number of times,
then resolve() once. Tokens carry a per-conversion pass id so tokens from
different documents can never be confused with each other.
"""

import uuid
from typing import List, Optional

from ..config import AppSettings, appsettings
from ..models.sample import RenderedSample
from .errors import StoreError
from .log import LOG


class ResultAccumulator:
    """
    Reserves rendered sample markup behind tokens for one conversion

    Example:
        >>> results = ResultAccumulator()
        >>> token = results.reserve("<pre>x</pre>")
        >>> results.resolve(f"<p>{token}</p>")
        '<pre>x</pre>'
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or appsettings
        self.pass_id = uuid.uuid4().hex[:8]
        self.samples: List[RenderedSample] = []
        self.resolved = False

    def __len__(self) -> int:
        return len(self.samples)

    def reserve(self, markup: str) -> str:
        """
        Keep rendered markup and hand back the token standing in for it

        Raises:
            StoreError: If the store has already been resolved
        """
        if self.resolved:
            raise StoreError("cannot reserve a sample after the store was resolved")
        token = self.settings.placeHolder_make(self.pass_id, len(self.samples))
        self.samples.append(RenderedSample(markup=markup, token=token))
        return token

    def resolve(self, text: str) -> str:
        """
        Replace every reserved token in the converted text with its markup

        Tokens are matched case-insensitively, and a paragraph wrapped
        around a token on its own is replaced along with it. Each token is
        substituted once; the store is emptied afterwards.

        Raises:
            StoreError: If called a second time
        """
        if self.resolved:
            raise StoreError("the store was already resolved for this conversion")

        for sample in self.samples:
            pattern = self.settings.placeHolder_pattern(sample.token)
            # Function replacement keeps backslashes in the markup literal
            text, count = pattern.subn(lambda match, markup=sample.markup: markup, text, count=1)
            if not count:
                LOG(f"Token {sample.token} not found in converted text", level=1)

        LOG(f"Resolved {len(self.samples)} samples for pass {self.pass_id}", level=3)
        self.samples = []
        self.resolved = True
        return text
