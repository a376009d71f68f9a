"""Pydantic models for the quoting API.

Amounts travel as uint256 decimal strings. Field names are camelCase on the
wire and snake_case in Python.
"""

from pydantic import BaseModel, Field

from rangepool.models.types import Address, Uint256


class AmountOutRequest(BaseModel):
    """Quote the output of an exact-input swap."""

    asset_in: Address = Field(alias="assetIn", description="Token sent to the pool")
    asset_out: Address = Field(alias="assetOut", description="Token received from the pool")
    amount_in: Uint256 = Field(alias="amountIn", description="Amount in, fee included")

    model_config = {"populate_by_name": True}


class AmountInRequest(BaseModel):
    """Quote the input needed for an exact-output swap."""

    asset_in: Address = Field(alias="assetIn", description="Token sent to the pool")
    asset_out: Address = Field(alias="assetOut", description="Token received from the pool")
    amount_out: Uint256 = Field(alias="amountOut", description="Desired amount out")

    model_config = {"populate_by_name": True}


class AmountOutResponse(BaseModel):
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class AmountInResponse(BaseModel):
    amount_in: Uint256 = Field(alias="amountIn")

    model_config = {"populate_by_name": True}


class SwapInfoResponse(BaseModel):
    """Exact-input quote with its pricing inputs.

    Token amounts are in native decimals; balances, weights and the fee
    percentage are 18-decimal fixed point.
    """

    amount_out: Uint256 = Field(alias="amountOut")
    amount_in_after_fees: Uint256 = Field(alias="amountInAfterFees")
    fee_amount: Uint256 = Field(alias="feeAmount")
    virtual_balance_in: Uint256 = Field(alias="virtualBalanceIn")
    virtual_balance_out: Uint256 = Field(alias="virtualBalanceOut")
    weight_in: Uint256 = Field(alias="weightIn")
    weight_out: Uint256 = Field(alias="weightOut")
    swap_fee_percentage: Uint256 = Field(alias="swapFeePercentage")

    model_config = {"populate_by_name": True}


class PoolResponse(BaseModel):
    """Snapshot of a pool's read surface."""

    pool_id: str = Field(alias="poolId")
    state: str = Field(description="'uninitialized' or 'active'")
    tokens: list[Address]
    scaling_factors: list[Uint256] = Field(alias="scalingFactors")
    normalized_weights: list[Uint256] = Field(alias="normalizedWeights")
    virtual_balances: list[Uint256] = Field(alias="virtualBalances")
    swap_fee_percentage: Uint256 = Field(alias="swapFeePercentage")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    error: str = Field(description="Reason code")
    detail: str
