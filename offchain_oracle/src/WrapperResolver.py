"""WrapperResolver: Expansion of an asset into its representative forms.

A wrapped form is an (asset, rate) pair meaning "1 unit of the original asset is
worth rate / 1e18 units of asset". Prices are looked up against every form so
that, e.g., a yield-bearing token can be priced through its underlying deposit.

Two building blocks are provided:
    - :class:`Wrapper`: a single-step conversion (``wrap(asset)``)
    - :class:`MultiWrapper`: a :class:`WrapperResolver` composing wrappers up
      to two steps deep, with the original asset appended last

.. code-block:: python

    >>> weth = StaticWrapper({NATIVE: (WETH, ONE)})
    >>> resolver = MultiWrapper(owner, [weth])
    >>> resolver.get_wrapped_tokens(NATIVE)
    [WrappedForm(asset=WETH, rate=10**18), WrappedForm(asset=NATIVE, rate=10**18)]
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .Asset import same_address, to_asset
from .errors import DuplicateEntry, InvalidRequest, NotAuthorized, UnknownEntry
from .FixedPoint import ONE, mul_div

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WrappedForm:
    """A representative form of an asset.

    :ivar asset: Representative asset address.
    :ivar rate: Units of ``asset`` per unit of the original asset, 1e18-scaled.
        ``None`` marks a form whose rate the resolver could not determine.
    """

    asset: str
    rate: int | None


class WrapperResolver(ABC):
    """Abstract base class for wrapping resolvers."""

    @abstractmethod
    def get_wrapped_tokens(self, asset: str) -> list[WrappedForm]:
        """Return the representative forms of an asset, in priority order.

        :param asset: Asset to expand.
        :returns: Zero or more wrapped forms.
        """
        pass


class Wrapper(ABC):
    """A single-step asset conversion."""

    @property
    def name(self) -> str:
        """Human-readable identifier used in log output."""
        return type(self).__name__

    @abstractmethod
    def wrap(self, asset: str) -> tuple[str, int]:
        """Convert an asset into its wrapped counterpart.

        :param asset: Asset to wrap.
        :returns: Tuple of (wrapped asset, rate 1e18-scaled).
        :raises Exception: If the asset is not supported by this wrapper.
        """
        pass


class StaticWrapper(Wrapper):
    """Wrapper backed by a fixed mapping.

    :ivar mapping: Dict mapping asset to (wrapped asset, rate).
    """

    def __init__(self, mapping: dict[str, tuple[str, int]]) -> None:
        self.mapping = dict(mapping)

    def wrap(self, asset: str) -> tuple[str, int]:
        if asset not in self.mapping:
            raise ValueError(f"Asset {asset} is not supported")
        return self.mapping[asset]


class MultiWrapper(WrapperResolver):
    """Resolver that composes single-step wrappers.

    For each wrapper that accepts the asset, its result is recorded and every
    other wrapper is then tried on that result; second-step results are recorded
    unless the asset was already seen. Wrapper failures are skipped. The
    original asset is always appended last with rate 1e18.

    :ivar owner: Address allowed to add and remove wrappers.
    """

    def __init__(self, owner: str, wrappers: list[Wrapper] | None = None) -> None:
        """Initialize the multi-wrapper.

        :param owner: Address allowed to mutate the wrapper list.
        :param wrappers: Initial wrappers, in priority order.
        """
        self.owner = to_asset(owner)
        self._lock = threading.Lock()
        self._wrappers: list[Wrapper] = []
        for wrapper in wrappers or []:
            if wrapper in self._wrappers:
                raise DuplicateEntry(f"Wrapper {wrapper.name} already added")
            self._wrappers.append(wrapper)

    @property
    def wrappers(self) -> list[Wrapper]:
        """Current wrappers, in priority order."""
        with self._lock:
            return list(self._wrappers)

    def add_wrapper(self, caller: str, wrapper: Wrapper) -> None:
        """Append a wrapper.

        :raises NotAuthorized: If caller is not the owner.
        :raises DuplicateEntry: If the wrapper is already present.
        """
        if not same_address(caller, self.owner):
            raise NotAuthorized(caller)
        with self._lock:
            if wrapper in self._wrappers:
                raise DuplicateEntry(f"Wrapper {wrapper.name} already added")
            self._wrappers.append(wrapper)
        logger.info(f"Wrapper added: {wrapper.name}")

    def remove_wrapper(self, caller: str, wrapper: Wrapper) -> None:
        """Remove a wrapper.

        :raises NotAuthorized: If caller is not the owner.
        :raises UnknownEntry: If the wrapper is not present.
        """
        if not same_address(caller, self.owner):
            raise NotAuthorized(caller)
        with self._lock:
            if wrapper not in self._wrappers:
                raise UnknownEntry(f"Wrapper {wrapper.name} is not registered")
            self._wrappers.remove(wrapper)
        logger.info(f"Wrapper removed: {wrapper.name}")

    def get_wrapped_tokens(self, asset: str) -> list[WrappedForm]:
        wrappers = self.wrappers
        forms: list[WrappedForm] = []
        seen: set[str] = set()

        for i, first in enumerate(wrappers):
            try:
                wrapped, rate = first.wrap(asset)
            except Exception as e:
                logger.debug(f"[{first.name}] cannot wrap {asset}: {e}")
                continue
            forms.append(WrappedForm(wrapped, rate))
            seen.add(wrapped)

            for j, second in enumerate(wrappers):
                if i == j:
                    continue
                try:
                    wrapped2, rate2 = second.wrap(wrapped)
                except Exception as e:
                    logger.debug(f"[{second.name}] cannot wrap {wrapped}: {e}")
                    continue
                if wrapped2 in seen:
                    continue
                forms.append(WrappedForm(wrapped2, mul_div(rate, rate2, ONE)))
                seen.add(wrapped2)

        forms.append(WrappedForm(asset, ONE))
        return forms


def expand(
    asset: str, use_wrapping: bool, resolver: WrapperResolver | None
) -> list[WrappedForm]:
    """Expand an asset into the wrapped forms used for price lookups.

    Without wrapping, the asset is its own single form at rate 1e18. With
    wrapping, the resolver is consulted and forms lacking a rate are dropped.

    :param asset: Asset to expand.
    :param use_wrapping: Whether to consult the resolver.
    :param resolver: Wrapping resolver; required when use_wrapping is True.
    :returns: List of wrapped forms, in resolver order.
    :raises InvalidRequest: If wrapping is requested without a resolver.
    """
    if not use_wrapping:
        return [WrappedForm(asset, ONE)]
    if resolver is None:
        raise InvalidRequest("Wrapping requested but no resolver is configured")

    forms = []
    for form in resolver.get_wrapped_tokens(asset):
        if form.rate is None:
            logger.warning(f"Dropping wrapped form {form.asset} of {asset}: no rate")
            continue
        forms.append(form)
    return forms
