"""Claim endpoints: create, liquidate, transfer and query custody claims.

Amounts travel as decimal strings because uint256 values do not fit in
JSON numbers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from nftgift.api.deps import get_vault
from nftgift.assets.base import MAX_UINT256, NATIVE_ASSET
from nftgift.vault.engine import VaultEngine

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_amount(value: str) -> str:
    """Validate a non-negative uint256 decimal string."""
    value = str(value).strip()
    if not value.isdigit():
        raise ValueError(f"Invalid amount format: {value}")
    if int(value) > MAX_UINT256:
        raise ValueError("Amount exceeds uint256 range")
    return value


class CreateClaimRequest(BaseModel):
    """Deposit request; ``native_payment`` carries the value for native deposits."""

    sender: str = Field(..., description="Depositor address")
    asset_address: str = Field(..., description=f"Asset address ({NATIVE_ASSET} for native)")
    amount: str = Field(default="0", description="Token amount in smallest units")
    native_payment: str = Field(default="0", description="Native currency attached")

    @field_validator("amount", "native_payment", mode="before")
    @classmethod
    def validate_amounts(cls, v) -> str:
        return parse_amount(v)


class LiquidateClaimRequest(BaseModel):
    """Liquidation request with the slippage guard."""

    sender: str = Field(..., description="Owner or approved address")
    output_asset_address: str = Field(..., description="Asset to receive")
    minimum_return: str = Field(default="0", description="Minimum output amount")

    @field_validator("minimum_return", mode="before")
    @classmethod
    def validate_minimum_return(cls, v) -> str:
        return parse_amount(v)


class TransferClaimRequest(BaseModel):
    sender: str
    to: str
    source: Optional[str] = Field(default=None, description="Current owner (defaults to sender)")


class ApproveClaimRequest(BaseModel):
    sender: str
    to: str


class ClaimResponse(BaseModel):
    """An active claim and its custody record."""

    id: int
    owner: str
    asset_address: str
    amount: str
    approved: Optional[str] = None


class CreateClaimResponse(BaseModel):
    success: bool
    id: int
    asset_address: str
    amount: str
    owner: str


class LiquidateClaimResponse(BaseModel):
    success: bool
    liquidated: bool
    id: int
    output_asset_address: Optional[str] = None
    returned_amount: Optional[str] = None
    message: str


@router.post("/claims", response_model=CreateClaimResponse)
async def create_claim(request: CreateClaimRequest, vault: VaultEngine = Depends(get_vault)):
    """Deposit an asset and mint a claim for it."""
    event = await vault.deposit(
        request.sender,
        request.asset_address,
        int(request.amount),
        native_payment=int(request.native_payment),
    )
    return CreateClaimResponse(
        success=True,
        id=event.claim_id,
        asset_address=event.asset_address,
        amount=str(event.amount),
        owner=event.owner,
    )


@router.get("/claims/{claim_id}", response_model=ClaimResponse)
async def get_claim(claim_id: int, vault: VaultEngine = Depends(get_vault)):
    """Get an active claim."""
    async with vault.reader() as ctx:
        if not await ctx.registry.exists(claim_id):
            raise HTTPException(status_code=404, detail=f"Claim {claim_id} not found")
        record = await ctx.registry.get_record(claim_id)
        owner = await ctx.registry.owner_of(claim_id)
        approved = await ctx.registry.get_approved(claim_id)

    return ClaimResponse(
        id=claim_id,
        owner=owner,
        asset_address=record.asset_address,
        amount=str(record.amount),
        approved=approved,
    )


@router.post("/claims/{claim_id}/liquidate", response_model=LiquidateClaimResponse)
async def liquidate_claim(
    claim_id: int, request: LiquidateClaimRequest, vault: VaultEngine = Depends(get_vault)
):
    """Burn a claim and pay its owner in the requested asset."""
    event = await vault.liquidate_nft(
        request.sender,
        claim_id,
        request.output_asset_address,
        int(request.minimum_return),
    )
    if event is None:
        return LiquidateClaimResponse(
            success=True,
            liquidated=False,
            id=claim_id,
            message=f"Claim {claim_id} does not exist; nothing to liquidate",
        )

    return LiquidateClaimResponse(
        success=True,
        liquidated=True,
        id=claim_id,
        output_asset_address=event.output_asset_address,
        returned_amount=str(event.returned_amount),
        message=f"Claim {claim_id} liquidated for {event.returned_amount}",
    )


@router.post("/claims/{claim_id}/transfer")
async def transfer_claim(
    claim_id: int, request: TransferClaimRequest, vault: VaultEngine = Depends(get_vault)
):
    """Transfer a claim to a new owner."""
    source = request.source or request.sender
    await vault.transfer_claim(request.sender, source, request.to, claim_id)
    return {"success": True, "id": claim_id, "owner": await vault.owner_of(claim_id)}


@router.post("/claims/{claim_id}/approve")
async def approve_claim(
    claim_id: int, request: ApproveClaimRequest, vault: VaultEngine = Depends(get_vault)
):
    """Approve an address to transfer or liquidate a claim."""
    await vault.approve_claim(request.sender, request.to, claim_id)
    return {"success": True, "id": claim_id}


@router.get("/owners/{address}/claims")
async def get_owner_claims(address: str, vault: VaultEngine = Depends(get_vault)):
    """List the claims held by an address."""
    async with vault.reader() as ctx:
        balance = await ctx.registry.balance_of(address)
        ids = await ctx.registry.tokens_of_owner(address)
    return {"owner": address, "balance": balance, "claims": ids}


@router.get("/vault/solvency")
async def get_solvency(vault: VaultEngine = Depends(get_vault)):
    """Custody owed versus holdings per asset."""
    report = await vault.solvency_report()
    return {
        "vault": vault.address,
        "solvent": all(entry["surplus"] >= 0 for entry in report.values()),
        "assets": {
            asset: {key: str(value) for key, value in entry.items()}
            for asset, entry in report.items()
        },
    }
