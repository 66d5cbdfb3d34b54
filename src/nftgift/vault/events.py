"""Events emitted by successful vault operations."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class ClaimMinted:
    """An asset was deposited and a claim minted for it."""

    claim_id: int
    asset_address: str
    amount: int
    owner: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["amount"] = str(self.amount)
        return data


@dataclass(frozen=True)
class ClaimLiquidated:
    """A claim was burned and its asset converted for the former owner."""

    claim_id: int
    output_asset_address: str
    returned_amount: int
    owner: str
    source_asset_address: str
    source_amount: int

    def to_dict(self) -> dict:
        data = asdict(self)
        data["returned_amount"] = str(self.returned_amount)
        data["source_amount"] = str(self.source_amount)
        return data
