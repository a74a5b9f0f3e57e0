"""Подавление повторных доставок вебхуков."""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class DedupEntry:
    """Hash обработанного вебхука и время его жизни."""
    hash: str
    inserted_at: float
    expires_at: float


class DuplicateSuppressor:
    """
    Множество hash'ей обработанных вебхуков с ограниченным временем жизни.

    Каждая запись удаляется отдельной задачей планировщика, id задачи
    строится из hash, поэтому на один hash существует не больше одной задачи.
    Независимо от планировщика, seen() не считает записи с истекшим сроком
    по часам clock, что позволяет тестировать истечение без ожидания.

    Размер множества не ограничен: он пропорционален числу уникальных
    вебхуков за окно expiry_seconds.
    """

    def __init__(
        self,
        expiry_seconds: float = 60,
        scheduler: BaseScheduler | None = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.expiry_seconds = expiry_seconds
        self.scheduler = scheduler
        self._clock = clock
        self._entries: dict[str, DedupEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def seen(self, hash: str) -> bool:
        """Проверка, обрабатывался ли вебхук с этим hash в пределах окна."""
        with self._lock:
            entry = self._entries.get(hash)
            if entry is None:
                return False
            if entry.expires_at <= self._clock():
                del self._entries[hash]
                return False
            return True

    def mark_seen(self, hash: str, expiry_seconds: float | None = None) -> bool:
        """
        Добавление hash в множество с удалением через expiry_seconds.

        Returns:
            bool: False если hash уже был в множестве (повторная задача не создаётся)
        """
        expiry = self.expiry_seconds if expiry_seconds is None else expiry_seconds
        now = self._clock()

        with self._lock:
            entry = self._entries.get(hash)
            if entry is not None and entry.expires_at > now:
                return False
            self._entries[hash] = DedupEntry(hash=hash, inserted_at=now, expires_at=now + expiry)

        self._schedule_expiry(hash, expiry)
        logger.debug("Webhook hash added to blocklist", webhook_hash=hash, expiry_seconds=expiry)
        return True

    def forget(self, hash: str) -> None:
        """Удаление hash и отмена задачи его истечения."""
        self._expire(hash)
        if self.scheduler is not None:
            try:
                self.scheduler.remove_job(self._job_id(hash))
            except JobLookupError:
                pass

    def _expire(self, hash: str) -> None:
        with self._lock:
            removed = self._entries.pop(hash, None)
        if removed is not None:
            logger.info("Removed webhook hash from blocklist", webhook_hash=hash)

    def _schedule_expiry(self, hash: str, expiry: float) -> None:
        if self.scheduler is None:
            return

        self.scheduler.add_job(
            func=self._expire,
            trigger=DateTrigger(
                run_date=datetime.now(timezone.utc) + timedelta(seconds=expiry)
            ),
            args=[hash],
            id=self._job_id(hash),
            name="Истечение hash вебхука",
            replace_existing=True,
            misfire_grace_time=None  # удаляем даже при опоздании
        )

    @staticmethod
    def _job_id(hash: str) -> str:
        return f"dedup:{hash}"
