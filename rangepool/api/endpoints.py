"""API endpoints for range pool quotes."""

from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends

from rangepool.models.quotes import (
    AmountInRequest,
    AmountInResponse,
    AmountOutRequest,
    AmountOutResponse,
    PoolResponse,
    SwapInfoResponse,
)
from rangepool.pool.custody import InMemoryVault
from rangepool.registry import PoolRegistry

logger = structlog.get_logger()

router = APIRouter(prefix="/pools")


@lru_cache(maxsize=1)
def get_default_registry() -> PoolRegistry:
    """Process-wide registry, empty until pools are added."""
    return PoolRegistry(InMemoryVault())


def get_registry() -> PoolRegistry:
    """Dependency provider for the pool registry.

    Override this in tests to inject a populated registry:
        app.dependency_overrides[get_registry] = lambda: registry
    """
    return get_default_registry()


@router.get("/{pool_id}")
async def get_pool(pool_id: str, registry: PoolRegistry = Depends(get_registry)) -> PoolResponse:
    pool = registry.get_pool(pool_id)
    return PoolResponse(
        pool_id=pool.get_pool_id(),
        state=pool.state.value,
        tokens=pool.get_tokens(),
        scaling_factors=[str(sf) for sf in pool.get_scaling_factors()],
        normalized_weights=[str(w.value) for w in pool.get_normalized_weights()],
        virtual_balances=[str(v.value) for v in pool.get_virtual_balances()],
        swap_fee_percentage=str(pool.get_swap_fee_percentage().value),
    )


@router.post("/{pool_id}/amount-out")
async def amount_out(
    pool_id: str,
    request: AmountOutRequest,
    registry: PoolRegistry = Depends(get_registry),
) -> AmountOutResponse:
    """Quote the amount out for an exact-input swap.

    Error Handling:
        - Unknown pool or token: 404
        - Pricing failure (e.g. pool not initialized): 400
    """
    pool = registry.get_pool(pool_id)
    result = registry.queries.get_amount_out(
        pool, int(request.amount_in), request.asset_in, request.asset_out
    )
    logger.debug(
        "quote_amount_out",
        pool_id=pool_id,
        amount_in=request.amount_in,
        amount_out=result,
    )
    return AmountOutResponse(amount_out=str(result))


@router.post("/{pool_id}/amount-in")
async def amount_in(
    pool_id: str,
    request: AmountInRequest,
    registry: PoolRegistry = Depends(get_registry),
) -> AmountInResponse:
    """Quote the amount in, fee included, for an exact-output swap."""
    pool = registry.get_pool(pool_id)
    result = registry.queries.get_amount_in(
        pool, int(request.amount_out), request.asset_in, request.asset_out
    )
    logger.debug(
        "quote_amount_in",
        pool_id=pool_id,
        amount_out=request.amount_out,
        amount_in=result,
    )
    return AmountInResponse(amount_in=str(result))


@router.post("/{pool_id}/swap-info")
async def swap_info(
    pool_id: str,
    request: AmountOutRequest,
    registry: PoolRegistry = Depends(get_registry),
) -> SwapInfoResponse:
    pool = registry.get_pool(pool_id)
    info = registry.queries.get_swap_info(
        pool, int(request.amount_in), request.asset_in, request.asset_out
    )
    return SwapInfoResponse(
        amount_out=str(info.amount_out),
        amount_in_after_fees=str(info.amount_in_after_fees),
        fee_amount=str(info.fee_amount),
        virtual_balance_in=str(info.virtual_balance_in),
        virtual_balance_out=str(info.virtual_balance_out),
        weight_in=str(info.weight_in),
        weight_out=str(info.weight_out),
        swap_fee_percentage=str(info.swap_fee_percentage),
    )
