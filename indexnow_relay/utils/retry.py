"""Retry декораторы для обработки временных ошибок."""

import asyncio
import functools
import logging
import random
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 0,
    base_delay: float = 1,
    max_delay: float = 60,
    backoff_factor: float = 2,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Декоратор для повторных попыток с экспоненциальным backoff.

    Args:
        max_retries: Количество повторов после первой попытки (0 - без повторов)
        base_delay: Начальная задержка в секундах
        max_delay: Максимальная задержка в секундах
        backoff_factor: Коэффициент увеличения задержки
        jitter: Добавлять случайность к задержке
        retryable_exceptions: Исключения для повтора
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e

                    if attempt == max_retries:
                        if max_retries:
                            logger.error(
                                f"Final retry attempt failed for {func.__name__}: {e}",
                                extra={
                                    "function": func.__name__,
                                    "attempt": attempt + 1,
                                    "max_retries": max_retries,
                                    "error": str(e)
                                }
                            )
                        break

                    delay = min(base_delay * (backoff_factor ** attempt), max_delay)
                    if jitter:
                        delay *= (0.5 + random.random() * 0.5)

                    logger.warning(
                        f"Retry {attempt + 1}/{max_retries} for {func.__name__} in {delay:.2f}s: {e}",
                        extra={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "delay": delay,
                            "error": str(e)
                        }
                    )

                    await asyncio.sleep(delay)

            raise last_exception

        return async_wrapper

    return decorator
