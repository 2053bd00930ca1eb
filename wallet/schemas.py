from pydantic import BaseModel, ConfigDict, Field

# System program id, used as the mint of the native token on SVM chains
NATIVE_MINT = "11111111111111111111111111111111"


class TokenBalanceResponse(BaseModel):
    """
    One token holding of a wallet.

    Attributes
    ----------
    mint : str
        Token mint address
    decimals : int
        Token decimals
    balance : float
        Balance in whole units
    logo : str
        Logo path
    name : str
        Token name
    symbol : str
        Token symbol
    price : float
        USD price per unit
    value_usd : float
        USD value of the holding (``valueUSD``)
    """
    mint: str
    decimals: int
    balance: float
    logo: str
    name: str
    symbol: str
    price: float
    value_usd: float = Field(alias="valueUSD")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class WalletBalanceResponse(BaseModel):
    """
    Response schema for ``GET /wallet/{address}``.

    Attributes
    ----------
    balance : float
        Native balance in whole units
    balance_usd : float
        USD value of the native balance (``balanceUSD``)
    tokens : list[TokenBalanceResponse]
        Token holdings, native token first
    """
    balance: float
    balance_usd: float = Field(alias="balanceUSD")
    tokens: list[TokenBalanceResponse]

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
