import re

# Base58 without 0, O, I and l; 32-byte SVM pubkeys encode to 32-44 characters
_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_valid_address(address: str | None) -> bool:
    """
    Check that ``address`` looks like a base58 SVM account address.

    Parameters
    ----------
    address : str | None
        Candidate address

    Returns
    -------
    bool
        True if the format is acceptable
    """
    return bool(address) and _ADDRESS_RE.match(address) is not None


def wallet_prefix(address: str) -> str:
    """Short lowercase prefix used when logging addresses."""
    return address[:8].lower()
