"""
Ejecución de requests HTTP con reintentos, backoff y deadline.

Estrategia:
- 429: respeta Retry-After si existe; si no, exponencial con jitter.
- 5xx y fallos de red: exponencial con jitter (solo requests idempotentes).
- 404 sobre un record_id: RecordNotFoundException inmediato (sin id cae como otros 4xx).
- Otros 4xx: error inmediato (config/auth/payload mal).
- Deadline vencido: RequestCancelledException, sin reintentar.
"""
from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple

import httpx
from loguru import logger

from airtable_records.shared.exceptions.records import (
    RecordNotFoundException,
    RemoteApiException,
    RequestCancelledException,
    ResponseFormatException,
    TransportException,
)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Política de reintentos (inmutable, compartible entre llamadas concurrentes)."""

    max_retries: int = 5
    min_backoff_s: float = 0.5
    max_backoff_s: float = 20.0
    jitter_ratio: float = 0.15

    def backoff_floor(self, attempt: int) -> float:
        """Delay base (sin jitter) para el intento `attempt` (0-based)."""
        return min(self.max_backoff_s, self.min_backoff_s * (2**attempt))

    def compute_delay(self, attempt: int, retry_after: Optional[str] = None) -> float:
        """
        Delay antes del siguiente intento.

        Retry-After (segundos o fecha HTTP) reemplaza al cálculo exponencial.
        """
        from_header = parse_retry_after(retry_after)
        if from_header is not None:
            return from_header
        base = self.backoff_floor(attempt)
        return base + random.uniform(0, self.jitter_ratio * base)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status < 600


class RequestExecutor:
    """
    Envuelve cada llamada HTTP del cliente.

    No guarda estado mutable entre llamadas: solo el http client, el header
    de autenticación y la política. Se puede usar concurrentemente.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        token: str,
        retry_policy: RetryPolicy,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._http = http_client
        self._auth_header = {"Authorization": f"Bearer {token}"}
        self._policy = retry_policy
        self._sleep = sleep or asyncio.sleep

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._policy

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Sequence[Tuple[str, Any]]] = None,
        json_body: Any = None,
        idempotent: bool = True,
        record_id: Optional[str] = None,
        deadline_s: Optional[float] = None,
    ) -> Any:
        """
        Ejecuta el request y retorna el JSON decodificado.

        Args:
            idempotent: si False, solo se reintenta ante 429 (el remoto no procesó la request)
            record_id: id involucrado, para enriquecer RecordNotFoundException
            deadline_s: tiempo máximo total (incluyendo reintentos y esperas)
        """
        call = self._request_with_retries(
            method,
            url,
            params=params,
            json_body=json_body,
            idempotent=idempotent,
            record_id=record_id,
        )
        if deadline_s is None:
            return await call

        try:
            return await asyncio.wait_for(call, timeout=deadline_s)
        except asyncio.TimeoutError as e:
            logger.warning(f"{method} {url} cancelado por deadline ({deadline_s}s)")
            raise RequestCancelledException(f"{method} {url}", deadline_s) from e

    async def _request_with_retries(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Sequence[Tuple[str, Any]]],
        json_body: Any,
        idempotent: bool,
        record_id: Optional[str],
    ) -> Any:
        max_retries = self._policy.max_retries

        for attempt in range(max_retries + 1):
            logger.debug(f"{method} {url} (intento {attempt + 1}/{max_retries + 1})")
            try:
                resp = await self._http.request(
                    method,
                    url,
                    params=list(params) if params else None,
                    json=json_body,
                    headers=self._auth_header,
                )
            except httpx.TransportError as e:
                if not idempotent or attempt >= max_retries:
                    logger.error(f"{method} {url} falló por red tras {attempt + 1} intentos: {e!r}")
                    raise TransportException(
                        f"Fallo de red en {method} {url}: {e!r}", attempts=attempt + 1
                    ) from e
                delay = self._policy.compute_delay(attempt)
                logger.warning(f"{method} {url} error de red ({e!r}); reintento en {delay:.2f}s")
                await self._sleep(delay)
                continue

            status = resp.status_code
            if 200 <= status < 300:
                return _decode_json(resp)

            if status == 404 and record_id:
                raise RecordNotFoundException(status, resp.text, record_id=record_id)

            retryable = status == 429 or (idempotent and _is_retryable_status(status))
            if not retryable:
                raise RemoteApiException(status, resp.text)

            if attempt >= max_retries:
                logger.error(f"{method} {url} -> {status} tras {attempt + 1} intentos")
                raise RemoteApiException(
                    status,
                    resp.text,
                    message=f"Airtable error {status} tras {attempt} reintentos: {resp.text}",
                )

            delay = self._policy.compute_delay(attempt, resp.headers.get("Retry-After"))
            logger.warning(f"{method} {url} -> {status}; reintento en {delay:.2f}s")
            await self._sleep(delay)

        raise AssertionError("unreachable")


def _decode_json(resp: httpx.Response) -> Any:
    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError as e:
        raise ResponseFormatException("Airtable devolvió un body que no es JSON", resp.text) from e
