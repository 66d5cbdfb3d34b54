"""Settlement-layer endpoints for dry-run mode.

Fund accounts and grant allowances in the simulated bank so the vault can
be exercised end to end without a chain.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from nftgift.api.deps import get_vault
from nftgift.api.routes.claims import parse_amount
from nftgift.assets.ledger_bank import LedgerAssetBank
from nftgift.config import get_settings
from nftgift.vault.engine import VaultEngine

router = APIRouter()


def require_dry_run() -> None:
    """Reject simulated-bank access outside dry-run mode."""
    if not get_settings().dry_run:
        raise HTTPException(status_code=403, detail="Only available in dry-run mode")


class FaucetRequest(BaseModel):
    asset: str
    account: str
    amount: str = Field(..., description="Amount in smallest units")

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return parse_amount(v)


class ApproveRequest(BaseModel):
    asset: str
    owner: str
    spender: str
    amount: str

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return parse_amount(v)


@router.post("/assets/faucet", dependencies=[Depends(require_dry_run)])
async def faucet(request: FaucetRequest, vault: VaultEngine = Depends(get_vault)):
    """Credit an account in the simulated bank."""
    async with vault.transaction("faucet") as ctx:
        balance = await LedgerAssetBank(ctx.session).mint(
            request.asset, request.account, int(request.amount)
        )
    return {"success": True, "balance": str(balance)}


@router.post("/assets/approve", dependencies=[Depends(require_dry_run)])
async def approve(request: ApproveRequest, vault: VaultEngine = Depends(get_vault)):
    """Grant an allowance in the simulated bank."""
    async with vault.transaction("approve") as ctx:
        await ctx.assets.approve(
            request.asset, request.owner, request.spender, int(request.amount)
        )
    return {"success": True}


@router.get("/assets/{asset}/balances/{account}", dependencies=[Depends(require_dry_run)])
async def get_balance(asset: str, account: str, vault: VaultEngine = Depends(get_vault)):
    """Balance of an account in the simulated bank."""
    async with vault.reader() as ctx:
        balance = await ctx.assets.balance_of(asset, account)
    return {"asset": asset, "account": account, "balance": str(balance)}
