"""Key lifecycle: issue, redeem and count keys against a KeyStore"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .errors import NotFoundError, StorageError, ValidationError
from .keys import expiry_window, generate_key_id, utcnow
from .models import KeyRecord, KeyStats, RedemptionResult
from .store import KeyStore

logger = logging.getLogger(__name__)

_url_adapter = TypeAdapter(AnyHttpUrl)

MAX_ID_ATTEMPTS = 5


def validate_link(link: Optional[str]) -> str:
    """Return *link* stripped if it is an absolute http(s) URL, else raise ValidationError."""
    if not link or not isinstance(link, str) or not link.strip():
        raise ValidationError("Link não fornecido")
    link = link.strip()
    try:
        _url_adapter.validate_python(link)
    except PydanticValidationError:
        raise ValidationError("Link inválido") from None
    return link


class KeyLifecycleEngine:
    """Applies the Unused -> Used state machine and the expiry rule."""

    def __init__(
        self,
        store: KeyStore,
        expiry: timedelta = None,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[datetime], str] = generate_key_id,
    ):
        self.store = store
        self.expiry = expiry or expiry_window()
        self.clock = clock
        self.id_factory = id_factory

    def _new_id(self, now: datetime) -> str:
        existing = {r.id for r in self.store.records}
        for _ in range(MAX_ID_ATTEMPTS):
            key_id = self.id_factory(now)
            if key_id not in existing:
                return key_id
            logger.warning(f"Generated key id collided with an existing key: {key_id}")
        raise StorageError("Não foi possível gerar uma key única")

    def issue(self, original_link: str, short_link: str) -> KeyRecord:
        """Create, persist and return a fresh unused key."""
        original_link = validate_link(original_link)
        if not short_link:
            raise ValidationError("Link encurtado ausente")

        with self.store.lock:
            now = self.clock()
            record = KeyRecord(
                id=self._new_id(now),
                created_at=now,
                used=False,
                short_link=short_link,
                original_link=original_link,
            )
            self.store.save(self.store.records + (record,))

        logger.info(f"Issued key {record.id} for {original_link}")
        return record

    def redeem(self, key_id: str) -> RedemptionResult:
        """Consume a key at most once.

        Raises:
            NotFoundError: no key with this exact id.
            StorageError: the redemption could not be persisted; the key
                stays unused.
        """
        with self.store.lock:
            records = self.store.records
            index = next((i for i, r in enumerate(records) if r.id == key_id), None)
            if index is None:
                logger.info(f"Redeem of unknown key {key_id!r}")
                raise NotFoundError()

            record = records[index]
            if record.used:
                logger.info(f"Key {key_id} already used at {record.used_at}")
                return RedemptionResult(valid=False, reason="already_used", record=record)

            now = self.clock()
            if record.is_expired(now, self.expiry):
                logger.info(f"Key {key_id} expired (created {record.created_at})")
                return RedemptionResult(valid=False, reason="expired", record=record)

            # clock may step backwards; usedAt must never precede createdAt
            used_at = max(now, record.created_at) if record.created_at else now
            redeemed = record.model_copy(update={"used": True, "used_at": used_at})
            self.store.save(records[:index] + (redeemed,) + records[index + 1:])

        logger.info(f"Key {key_id} redeemed")
        return RedemptionResult(valid=True, record=redeemed)

    def status(self) -> KeyStats:
        records = self.store.records
        used = sum(1 for r in records if r.used)
        return KeyStats(total=len(records), used=used, available=len(records) - used)
