"""Error taxonomy for the custody vault.

Every mutating vault operation is all-or-nothing: any of these errors aborts
the call and leaves the ledger exactly as it was before.
"""


class VaultError(Exception):
    """Base class for all vault errors."""

    pass


class AuthorizationError(VaultError):
    """Caller is not allowed to act on the claim."""

    pass


class InsufficientFundsError(VaultError):
    """A pull or push could not be satisfied (balance or allowance too low)."""

    pass


class UnknownClaimError(VaultError):
    """No active claim exists for the identifier."""

    def __init__(self, claim_id: int):
        self.claim_id = claim_id
        super().__init__(f"Claim {claim_id} does not exist")


class SlippageError(VaultError):
    """Exchange return is below the caller's minimum."""

    def __init__(self, expected: int, minimum: int):
        self.expected = expected
        self.minimum = minimum
        super().__init__(f"Return amount {expected} is below minimum {minimum}")


class InvalidAddressError(VaultError, ValueError):
    """Malformed or forbidden account address."""

    pass


class InvalidAssetError(InvalidAddressError):
    """Malformed asset address."""

    pass


class InvalidAmountError(VaultError, ValueError):
    """Amount out of range or inconsistent with the payment."""

    pass


class InvalidClaimIdError(VaultError, ValueError):
    """Claim identifier outside the unsigned 256-bit range."""

    def __init__(self, claim_id):
        self.claim_id = claim_id
        super().__init__(f"Invalid claim id: {claim_id!r}")


class ExchangeError(VaultError):
    """Exchange collaborator could not perform the conversion."""

    pass


class ReentrancyError(VaultError):
    """A vault operation was re-entered while another one was running."""

    pass


class LedgerInvariantError(VaultError):
    """Custody accounting no longer matches the vault's holdings."""

    pass


class LockTimeoutError(VaultError):
    """Raised when the vault lock cannot be acquired within the timeout period."""

    pass
