"""
Cache read-through des lectures de wallets Tookan.

  - une entrée n'est servie que si now < fetched_at + ttl ; expirée = absente
  - un seul appel Tookan en vol par clé : les lectures concurrentes attendent
    la même tâche (pas de verrou global, les clés différentes restent parallèles)
  - un échec n'est jamais mis en cache et aucune entrée expirée n'est servie
    en repli : l'erreur remonte à tous les appelants
  - la tâche partagée survit à l'annulation d'une requête appelante
  - jamais utilisé pour les écritures
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Iterable, Optional, Union

from core.exceptions import ProviderAuthError
from models.common import WalletEntityType
from models.wallet import WalletBatch, WalletEntity, WalletMetadata

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
MAX_TTL_SECONDS = 600.0      # borne documentée, jamais dépassée
PURGE_THRESHOLD = 1024

WalletValue = Union[WalletEntity, WalletBatch]
Fetcher = Callable[[], Awaitable[WalletValue]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def clamp_ttl(ttl_seconds: float) -> float:
    if ttl_seconds > MAX_TTL_SECONDS:
        logger.warning(f"TTL cache wallets {ttl_seconds}s > {MAX_TTL_SECONDS}s, ramené à {MAX_TTL_SECONDS}s")
        return MAX_TTL_SECONDS
    if ttl_seconds < 0:
        logger.warning(f"TTL cache wallets négatif ({ttl_seconds}s), ramené à 0")
        return 0.0
    return float(ttl_seconds)


# ── Clés ──────────────────────────────────────────────────────────────────────

def driver_key(driver_id: str) -> str:
    return f"driver:{driver_id}"


def vendor_batch_key(
    entity_type: WalletEntityType,
    vendor_ids: Iterable[str],
    offset: int,
    limit: int,
) -> str:
    """Même ensemble d'ids + même pagination → même clé, quel que soit l'ordre."""
    ids = ",".join(sorted({str(v).strip() for v in vendor_ids if str(v).strip()}))
    return f"{entity_type.value}:{ids}:{offset}:{limit}"


# ── Entrées ───────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WalletCacheEntry:
    value: WalletValue
    fetched_at: datetime
    ttl: timedelta

    @property
    def expires_at(self) -> datetime:
        return self.fetched_at + self.ttl

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class CachedResult:
    value: WalletValue
    cached: bool
    fetched_at: datetime

    def metadata(self) -> WalletMetadata:
        return WalletMetadata(source="provider", cached=self.cached, fetched_at=self.fetched_at)


class WalletCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ttl = timedelta(seconds=clamp_ttl(ttl_seconds))
        self._clock = clock or _utcnow
        self._entries: Dict[str, WalletCacheEntry] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    async def get(self, key: str, fetcher: Fetcher) -> CachedResult:
        entry = self._entries.get(key)
        if entry is not None:
            if entry.is_valid(self._clock()):
                logger.debug(f"Cache wallet hit : {key}")
                return CachedResult(entry.value, cached=True, fetched_at=entry.fetched_at)
            del self._entries[key]
        logger.debug(f"Cache wallet miss : {key}")
        return await self._join_or_fetch(key, fetcher)

    async def bypass(self, key: str, fetcher: Fetcher) -> CachedResult:
        """
        Lecture fraîche demandée explicitement. Rejoint une lecture déjà en vol
        (démarrée après la dernière invalidation), sinon en lance une.
        Le résultat alimente le cache.
        """
        return await self._join_or_fetch(key, fetcher)

    def invalidate(self, key: str) -> None:
        """
        Oublie l'entrée et détache la lecture en vol : ses appelants actuels
        reçoivent leur résultat mais il n'est pas stocké (il peut précéder l'écriture).
        """
        self._entries.pop(key, None)
        self._inflight.pop(key, None)
        logger.debug(f"Cache wallet invalidé : {key}")

    def clear(self) -> None:
        self._entries.clear()
        self._inflight.clear()
        logger.info("Cache wallets vidé")

    def __len__(self) -> int:
        return len(self._entries)

    async def _join_or_fetch(self, key: str, fetcher: Fetcher) -> CachedResult:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch(key, fetcher))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task
        entry = await asyncio.shield(task)
        return CachedResult(entry.value, cached=False, fetched_at=entry.fetched_at)

    async def _fetch(self, key: str, fetcher: Fetcher) -> WalletCacheEntry:
        me = asyncio.current_task()
        started = self._clock()
        try:
            value = await fetcher()
        except ProviderAuthError:
            self.clear()
            raise
        finally:
            registered = self._inflight.get(key) is me
            if registered:
                del self._inflight[key]

        # horodaté au départ de l'appel
        entry = WalletCacheEntry(value=value, fetched_at=started, ttl=self.ttl)
        if registered:
            self._store(key, entry)
        return entry

    def _store(self, key: str, entry: WalletCacheEntry) -> None:
        if len(self._entries) >= PURGE_THRESHOLD:
            now = self._clock()
            for stale in [k for k, e in self._entries.items() if not e.is_valid(now)]:
                del self._entries[stale]
        self._entries[key] = entry


def _consume_exception(task: asyncio.Task) -> None:
    # évite "Task exception was never retrieved" quand tous les appelants ont été annulés
    if not task.cancelled():
        task.exception()
