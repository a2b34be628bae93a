"""FastAPI backend: market lifecycle, bets, claims, odds and live feed."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Iterator

import structlog
from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predbets.api.auth import admin_key_auth, caller_identity
from predbets.api.feed import FeedHub
from predbets.api.schemas import (
    AuditResponse,
    BalanceResponse,
    BetsListResponse,
    ClaimRequest,
    ClaimResponse,
    CreateMarketRequest,
    DepositRequest,
    ErrorResponse,
    EventsResponse,
    HealthResponse,
    MarketsListResponse,
    OddsResponse,
    PlaceBetRequest,
    QuoteResponse,
    ResolveMarketRequest,
)
from predbets.config import Settings, get_settings
from predbets.errors import MarketNotFound, SettlementError
from predbets.metrics.odds import market_odds
from predbets.models import Bet, Market, MarketState
from predbets.notify import Notifier
from predbets.replay.audit import audit_market
from predbets.settlement import SettlementService
from predbets.settlement.auth import require_owner
from predbets.storage.db import get_connection, init_schema
from predbets.storage.event_log import list_bet_events
from predbets.storage.markets import get_market

log = structlog.get_logger(__name__)

_ERROR_RESPONSES = {
    403: {"description": "Caller does not own the record", "model": ErrorResponse},
    404: {"description": "Market or bet not found", "model": ErrorResponse},
    409: {"description": "Rejected by market or bet state", "model": ErrorResponse},
    422: {"description": "Invalid amount, vote or fee", "model": ErrorResponse},
}


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


def get_service(request: Request) -> Iterator[SettlementService]:
    """One DuckDB connection per request, closed afterwards."""
    settings: Settings = request.app.state.settings
    conn = get_connection(settings.db_path)
    try:
        yield SettlementService(
            conn,
            default_fee_basis_points=settings.default_fee_basis_points,
            notifier=request.app.state.notifier,
        )
    finally:
        conn.close()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API. Tests pass their own Settings; the CLI uses the configured profile."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        conn = get_connection(settings.db_path)
        try:
            init_schema(conn)
        finally:
            conn.close()
        unsubscribe = app.state.notifier.subscribe(app.state.feed.on_event)
        log.info("api_started", db_path=settings.db_path, subscribers=app.state.notifier.subscriber_count)
        yield
        unsubscribe()

    app = FastAPI(title="predbets API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.notifier = Notifier()
    app.state.feed = FeedHub()
    app.add_middleware(
        CORSMiddleware, allow_origins=settings.cors_origins, allow_methods=["*"], allow_headers=["*"]
    )

    @app.exception_handler(SettlementError)
    async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
        return _error_json(exc.code, exc.message, exc.status_code)

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    # --- Markets ---

    @app.get("/markets", response_model=MarketsListResponse)
    def markets_list(
        state: MarketState | None = None,
        limit: int = Query(100, ge=1, le=500),
        offset: int = Query(0, ge=0),
        service: SettlementService = Depends(get_service),
    ) -> MarketsListResponse:
        """List markets, newest first, with optional state filter and limit/offset."""
        all_markets = service.list_markets(state=state)
        return MarketsListResponse(markets=all_markets[offset : offset + limit], total=len(all_markets))

    @app.post("/markets", response_model=Market, status_code=201, responses=_ERROR_RESPONSES)
    def markets_create(
        body: CreateMarketRequest,
        caller: str = Depends(caller_identity),
        service: SettlementService = Depends(get_service),
    ) -> Market:
        """Open a market. The caller becomes its admin."""
        return service.create_market(body.market_id, caller, fee_basis_points=body.fee_basis_points)

    @app.get("/markets/{market_id}", response_model=Market, responses=_ERROR_RESPONSES)
    def markets_detail(market_id: str, service: SettlementService = Depends(get_service)) -> Market:
        return service.get_market(market_id)

    @app.post("/markets/{market_id}/resolve", response_model=Market, responses=_ERROR_RESPONSES)
    def markets_resolve(
        market_id: str,
        body: ResolveMarketRequest,
        caller: str = Depends(caller_identity),
        service: SettlementService = Depends(get_service),
    ) -> Market:
        """Declare the winner. Admin only, once."""
        return service.resolve_market(caller, market_id, body.winner)

    @app.get("/markets/{market_id}/odds", response_model=OddsResponse, responses=_ERROR_RESPONSES)
    def markets_odds(market_id: str, service: SettlementService = Depends(get_service)) -> OddsResponse:
        """Implied probabilities and payout multipliers at current pools. Indicative only."""
        return OddsResponse(**market_odds(service.get_market(market_id)))

    @app.get("/markets/{market_id}/quote", response_model=QuoteResponse, responses=_ERROR_RESPONSES)
    def markets_quote(
        market_id: str,
        vote: str = Query(..., description="yes or no"),
        amount: int = Query(..., description="Hypothetical stake"),
        service: SettlementService = Depends(get_service),
    ) -> QuoteResponse:
        """Projected payout if this stake were placed now and its side won."""
        b = service.quote(market_id, vote, amount)
        return QuoteResponse(
            market_id=market_id,
            vote=vote.strip().lower(),
            amount=amount,
            total_pool=b.total_pool,
            fee=b.fee,
            distributable=b.distributable,
            winning_pool=b.winning_pool,
            payout=b.payout,
        )

    @app.get("/markets/{market_id}/events", response_model=EventsResponse, responses=_ERROR_RESPONSES)
    def markets_events(
        market_id: str,
        since_id: int | None = Query(None, ge=0),
        limit: int = Query(200, ge=1, le=1000),
        service: SettlementService = Depends(get_service),
    ) -> EventsResponse:
        """BetPlaced events after since_id. Display feed only; totals come from /markets/{id}."""
        service.get_market(market_id)
        events = list_bet_events(service.conn, market_id=market_id, since_id=since_id, limit=limit)
        return EventsResponse(market_id=market_id, events=events)

    @app.get("/markets/{market_id}/audit", response_model=AuditResponse, responses=_ERROR_RESPONSES)
    def markets_audit(market_id: str, service: SettlementService = Depends(get_service)) -> AuditResponse:
        report = audit_market(service.conn, market_id)
        if report is None:
            raise MarketNotFound(f"Market not found: {market_id}")
        return AuditResponse(market_id=market_id, ok=report.ok, issues=report.issues, report=report.to_dict())

    # --- Bets ---

    @app.post("/markets/{market_id}/bets", response_model=Bet, status_code=201, responses=_ERROR_RESPONSES)
    def bets_place(
        market_id: str,
        body: PlaceBetRequest,
        caller: str = Depends(caller_identity),
        service: SettlementService = Depends(get_service),
    ) -> Bet:
        return service.place_bet(caller, market_id, body.vote, body.amount)

    @app.get("/markets/{market_id}/bets", response_model=BetsListResponse, responses=_ERROR_RESPONSES)
    def bets_list(market_id: str, service: SettlementService = Depends(get_service)) -> BetsListResponse:
        service.get_market(market_id)
        bets = service.list_bets(market_id=market_id)
        return BetsListResponse(bets=bets, total=len(bets))

    @app.post("/markets/{market_id}/claim", response_model=ClaimResponse, responses=_ERROR_RESPONSES)
    def bets_claim(
        market_id: str,
        body: ClaimRequest | None = None,
        caller: str = Depends(caller_identity),
        service: SettlementService = Depends(get_service),
    ) -> ClaimResponse:
        """Withdraw the winnings of a bet, once."""
        user = body.user if body is not None else None
        result = service.claim(caller, market_id, user=user)
        return ClaimResponse(
            market_id=market_id,
            user=result.bet.user,
            amount=result.bet.amount,
            payout=result.payout,
            fee=result.breakdown.fee,
            distributable=result.breakdown.distributable,
            winning_pool=result.breakdown.winning_pool,
        )

    @app.get("/users/{user}/bets", response_model=BetsListResponse)
    def user_bets(user: str, service: SettlementService = Depends(get_service)) -> BetsListResponse:
        """Betting history for one user across markets."""
        bets = service.list_bets(user=user)
        return BetsListResponse(bets=bets, total=len(bets))

    # --- Accounts ---

    @app.get("/accounts/{user}", response_model=BalanceResponse, responses=_ERROR_RESPONSES)
    def account_balance(
        user: str,
        caller: str = Depends(caller_identity),
        service: SettlementService = Depends(get_service),
    ) -> BalanceResponse:
        require_owner(caller, user, "view balance")
        return BalanceResponse(user=user, balance=service.balance(user))

    @app.post("/accounts/{user}/deposit", response_model=BalanceResponse, responses=_ERROR_RESPONSES)
    def account_deposit(
        user: str,
        body: DepositRequest,
        _admin: bool = Depends(admin_key_auth),
        service: SettlementService = Depends(get_service),
    ) -> BalanceResponse:
        """Credit a user's balance (funding bridge). Requires X-Admin-Key."""
        return BalanceResponse(user=user, balance=service.deposit(user, body.amount))

    # --- Live feed ---

    @app.websocket("/markets/{market_id}/feed")
    async def market_feed(websocket: WebSocket, market_id: str) -> None:
        """Push current totals on connect, then every BetPlaced for the market."""
        settings: Settings = websocket.app.state.settings
        conn = get_connection(settings.db_path)
        try:
            market = get_market(conn, market_id)
        finally:
            conn.close()
        if market is None:
            await websocket.close(code=4404)
            return
        hub: FeedHub = websocket.app.state.feed
        await websocket.accept()
        queue = hub.register(market_id)
        log.info("feed_connected", market_id=market_id, listeners=hub.listener_count(market_id))
        try:
            await websocket.send_json({"type": "snapshot", **market_odds(market)})
            while True:
                event = await queue.get()
                await websocket.send_json({"type": "bet_placed", **event.model_dump(mode="json")})
        except WebSocketDisconnect:
            pass
        finally:
            hub.unregister(market_id, queue)
            log.info("feed_disconnected", market_id=market_id, listeners=hub.listener_count(market_id))


app = create_app()


def run_api(
    host: str = "127.0.0.1",
    port: int = 8000,
    profile: str | None = None,
    settings: Settings | None = None,
) -> None:
    import uvicorn

    uvicorn.run(create_app(settings or get_settings(profile)), host=host, port=port, reload=False)
