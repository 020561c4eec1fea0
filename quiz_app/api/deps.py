import time
from collections import deque, defaultdict

from fastapi import HTTPException, Request, status

from quiz_app.core.config import Settings, settings
from quiz_app.guard.form import SignupForm
from quiz_app.guard.ratelimit import InMemoryAttemptStore, SignupRateLimiter
from quiz_app.guard.signup import SignupGuard
from quiz_app.services.client_ip import ClientIPLookup, ip_from_request
from quiz_app.services.identity import LocalIdentity, SupabaseIdentity
from quiz_app.services.records import LocalRecords, SupabaseRecords


class Services:
    """External bindings plus the guard built on them; one per app."""

    def __init__(self, identity, records, guard: SignupGuard, ip_lookup=None):
        self.identity = identity
        self.records = records
        self.guard = guard
        self.ip_lookup = ip_lookup

    async def aclose(self) -> None:
        await self.identity.aclose()
        await self.records.aclose()
        if self.ip_lookup is not None:
            await self.ip_lookup.aclose()


def build_services(cfg: Settings) -> Services:
    if cfg.backend == "supabase":
        if not cfg.supabase_url or not cfg.supabase_anon_key:
            raise RuntimeError("supabase backend needs SUPABASE_URL and SUPABASE_ANON_KEY")
        identity = SupabaseIdentity(
            cfg.supabase_url,
            cfg.supabase_anon_key,
            cfg.supabase_service_role_key,
            redirect_to=cfg.email_redirect_to,
            timeout=cfg.http_timeout_sec,
        )
        records = SupabaseRecords(cfg.supabase_url, cfg.supabase_anon_key, timeout=cfg.http_timeout_sec)
    else:
        identity = LocalIdentity()
        records = LocalRecords()

    limiter = SignupRateLimiter(
        InMemoryAttemptStore(),
        window_sec=cfg.signup_window_sec,
        max_per_email=cfg.signup_max_per_email,
        max_per_ip=cfg.signup_max_per_ip,
        prune_interval_sec=cfg.signup_prune_interval_sec,
    )
    guard = SignupGuard(identity, records, limiter, max_password=cfg.password_max_length)
    ip_lookup = ClientIPLookup(cfg.client_ip_url, timeout=cfg.http_timeout_sec) if cfg.client_ip_url else None
    return Services(identity, records, guard, ip_lookup)


def get_services(request: Request) -> Services:
    return request.app.state.services

def get_guard(request: Request) -> SignupGuard:
    return request.app.state.services.guard

def new_signup_form() -> SignupForm:
    return SignupForm(
        debounce_ms=settings.password_match_debounce_ms,
        max_password=settings.password_max_length,
    )

async def client_ip(request: Request) -> str:
    # the remote lookup sees this server's address, so it only stands in when the peer is unknown
    lookup = request.app.state.services.ip_lookup
    if request.client is None and lookup is not None:
        return await lookup.lookup()
    return ip_from_request(request, settings.trusted_proxies)


_limits: list[dict] = []

def _sweep(state: dict, now: float, window_sec: int) -> None:
    buckets = state["buckets"]
    for key in list(buckets):
        q = buckets[key]
        while q and now - q[0] > window_sec:
            q.popleft()
        if not q:
            del buckets[key]
    state["last_sweep"] = now

def rate_limit(max_hits: int, window_sec: int):
    state = {"buckets": defaultdict(deque), "last_sweep": 0.0}
    _limits.append(state)

    async def _guard(request: Request):
        key = (request.url.path, ip_from_request(request, settings.trusted_proxies))
        now = time.time()
        if now - state["last_sweep"] > window_sec:
            _sweep(state, now, window_sec)
        q = state["buckets"][key]
        while q and now - q[0] > window_sec:
            q.popleft()
        if len(q) >= max_hits:
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many requests")
        q.append(now)
    _guard.state = state
    return _guard

def reset_rate_limits() -> None:
    for state in _limits:
        state["buckets"].clear()
        state["last_sweep"] = 0.0
