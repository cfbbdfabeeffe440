"""
Draft store: the single owner of a booking draft.

All mutation goes through ``update``. After every merge the store runs one
reaction that applies the cross-field clearing rules, recomputes the
derived totals, checks the pricing invariant, writes the safe projection
to the durable cache and notifies observers.

Usage:
    store = DraftStore(MemoryDraftCache(), key="bookingFormProgress")
    store.update(service=ServiceSnapshot("svc-1", "Studio", 500000, 50000))
    store.draft.totals.total_price  # 450000
"""

import base64
from dataclasses import asdict, fields, replace
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from photobook.config import UploadConfig, settings
from photobook.draft.cache import DraftCache
from photobook.logging_context import get_session_logger
from photobook.pricing import calculator
from photobook.schemas.draft_schema import (
    AddonSelection,
    Draft,
    ProofFile,
    ServiceSnapshot,
)

logger = get_session_logger(__name__)

DERIVED_FIELDS: frozenset[str] = frozenset({"totals"})

# Never written to the cache: binary data, the coupon verdict and derived totals.
EXCLUDED_FROM_CACHE: frozenset[str] = frozenset(
    {"proof_file", "proof_preview", "coupon", "totals"}
)

INPUT_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(Draft) if f.name not in DERIVED_FIELDS
)

_TEXT_FIELDS: tuple[str, ...] = (
    "date", "time", "location_link", "name", "whatsapp", "notes", "dp_amount",
)

DraftListener = Callable[[Draft, Draft], None]
AddonsInput = Union[Mapping[str, AddonSelection], Iterable[AddonSelection]]


class DraftInvariantError(RuntimeError):
    """Raised when the derived totals disagree with their inputs. Indicates a defect."""


class ProofFileError(ValueError):
    """Raised when an uploaded proof file is too large or of the wrong type."""


def _copy(draft: Draft) -> Draft:
    return replace(draft, addons=dict(draft.addons))


def _as_addon_map(addons: AddonsInput) -> dict[str, AddonSelection]:
    if isinstance(addons, Mapping):
        return {key: value for key, value in addons.items()}
    return {selection.addon_id: selection for selection in addons}


class DraftStore:
    """
    Holds one Draft and exposes it read-only plus a single ``update`` operation.

    Observers subscribed via ``subscribe`` receive ``(previous, current)``
    copies after every mutation, including ``reset``.
    """

    def __init__(
        self,
        cache: DraftCache,
        key: str = settings.draft.cache_key,
        upload: UploadConfig = settings.upload,
    ) -> None:
        self._cache = cache
        self._key = key
        self._upload = upload
        self._listeners: list[DraftListener] = []
        self._draft = self._restore()

    @property
    def draft(self) -> Draft:
        """A copy of the current draft. Mutating it has no effect on the store."""
        return _copy(self._draft)

    @property
    def subtotal_for_coupon(self) -> int:
        return calculator.subtotal_for_coupon(self._draft.service, self._draft.addons.values())

    def subscribe(self, listener: DraftListener) -> Callable[[], None]:
        """Register an observer. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------ #
    # Mutation
    # ------------------------------------------------------------------ #

    def update(self, **partial: Any) -> Draft:
        """
        Shallow-merge ``partial`` into the draft and run the recompute reaction.

        Raises:
            ValueError: On unknown or derived fields, or when a coupon is set
                in the same update that changes the service or add-ons.
        """
        derived = DERIVED_FIELDS.intersection(partial)
        if derived:
            raise ValueError(f"Derived fields cannot be set directly: {sorted(derived)}")
        unknown = set(partial) - set(INPUT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown draft fields: {sorted(unknown)}")

        if "addons" in partial:
            partial["addons"] = _as_addon_map(partial["addons"])

        previous = self._draft
        merged = replace(previous, **partial)

        service_changed = "service" in partial and merged.service != previous.service
        addons_changed = "addons" in partial and merged.addons != previous.addons

        if service_changed or addons_changed:
            if partial.get("coupon") is not None:
                raise ValueError("A coupon cannot be applied in the same update that moves the subtotal")
            if merged.coupon is not None:
                logger.info("Clearing coupon '%s': discount base changed", merged.coupon.code)
            merged.coupon = None
        if service_changed:
            if partial.get("addons"):
                raise ValueError("Add-ons cannot be set in the same update that changes the service")
            merged.addons = {}

        self._commit(previous, self._recompute(merged))
        return self.draft

    def attach_proof(self, filename: str, content: bytes, content_type: str) -> Draft:
        """Validate and attach a proof-of-payment image with its data-URL preview."""
        if content_type not in self._upload.allowed_types:
            allowed = ", ".join(self._upload.allowed_types)
            raise ProofFileError(f"Invalid file type '{content_type}'. Allowed: {allowed}")
        if len(content) > self._upload.max_proof_bytes:
            limit_mb = self._upload.max_proof_bytes / (1024 * 1024)
            raise ProofFileError(f"File too large (max {limit_mb:g}MB)")
        if not content:
            raise ProofFileError("File is empty")

        encoded = base64.b64encode(content).decode("ascii")
        return self.update(
            proof_file=ProofFile(filename=filename, content=content, content_type=content_type),
            proof_preview=f"data:{content_type};base64,{encoded}",
        )

    def clear_proof(self) -> Draft:
        return self.update(proof_file=None, proof_preview="")

    def reset(self) -> None:
        """Discard the draft and its cached copy."""
        previous = self._draft
        self._draft = self._recompute(Draft())
        try:
            self._cache.clear(self._key)
        except OSError as e:
            logger.warning("Could not clear cached draft '%s': %s", self._key, e)
        logger.info("Draft reset")
        self._notify(previous, self._draft)

    # ------------------------------------------------------------------ #
    # Reaction
    # ------------------------------------------------------------------ #

    def _commit(self, previous: Draft, current: Draft) -> None:
        self._check_invariants(current)
        self._draft = current
        self._persist()
        self._notify(previous, current)

    @staticmethod
    def _recompute(draft: Draft) -> Draft:
        draft.totals = calculator.breakdown(draft.service, draft.addons.values(), draft.coupon)
        return draft

    @staticmethod
    def _check_invariants(draft: Draft) -> None:
        t = draft.totals
        expected = max(
            0, t.service_base_price - t.base_discount + t.addons_total - t.coupon_discount
        )
        if t.total_price != expected:
            raise DraftInvariantError(
                f"total_price {t.total_price} != recomputed {expected}"
            )
        if t.coupon_discount != calculator.coupon_discount(draft.coupon):
            raise DraftInvariantError(
                f"coupon_discount {t.coupon_discount} does not match coupon {draft.coupon!r}"
            )
        for key, selection in draft.addons.items():
            if key != selection.addon_id:
                raise DraftInvariantError(f"Add-on keyed as '{key}' has id '{selection.addon_id}'")

    def _notify(self, previous: Draft, current: Draft) -> None:
        for listener in list(self._listeners):
            listener(_copy(previous), _copy(current))

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def _project(self) -> dict[str, Any]:
        """Safe projection written to the cache."""
        draft = self._draft
        data: dict[str, Any] = {
            "service": asdict(draft.service) if draft.service else None,
            "addons": [asdict(a) for a in draft.addons.values()],
        }
        for name in _TEXT_FIELDS:
            data[name] = getattr(draft, name)
        return data

    def _persist(self) -> None:
        try:
            self._cache.save(self._key, self._project())
        except OSError as e:
            # Cache failures never block editing.
            logger.warning("Could not persist draft '%s': %s", self._key, e)

    def _restore(self) -> Draft:
        data = self._cache.load(self._key)
        if not data:
            return self._recompute(Draft())

        for excluded in EXCLUDED_FROM_CACHE:
            data.pop(excluded, None)

        draft = Draft()
        try:
            if data.get("service"):
                draft.service = ServiceSnapshot(**data["service"])
            draft.addons = _as_addon_map(
                AddonSelection(**item) for item in data.get("addons") or []
            )
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring cached selections for '%s': %s", self._key, e)
            draft.service = None
            draft.addons = {}

        for name in _TEXT_FIELDS:
            value: Optional[Any] = data.get(name)
            if isinstance(value, str):
                setattr(draft, name, value)

        logger.info("Draft restored from cache '%s'", self._key)
        return self._recompute(draft)
