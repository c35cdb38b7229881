"""
Asset Ledger — fungible token balances.

The insurance core only needs one contract from the asset ledger:
"debit A by X, credit B by X, fail if A has insufficient balance". The
AssetLedger protocol states that contract; SqlAssetLedger implements it on
the token_accounts table, inside the caller's session, so a token movement
commits or rolls back together with the business change that caused it.
"""

from typing import Optional, Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from riskcover.db.models import TokenAccount
from riskcover.db.repositories.token_account import token_account_repo
from riskcover.engine.checked import checked_add, ensure_u64
from riskcover.errors import InsufficientFunds, InvalidAmount, InvalidTokenAccount, Unauthorized

logger = structlog.get_logger(__name__)


class AssetLedger(Protocol):
    async def open_account(
        self, session: AsyncSession, address: str, owner: str, mint: str,
    ) -> TokenAccount: ...

    async def get_account(self, session: AsyncSession, address: str) -> Optional[TokenAccount]: ...

    async def mint_to(self, session: AsyncSession, address: str, amount: int) -> int: ...

    async def balance(self, session: AsyncSession, address: str) -> int: ...

    async def transfer(
        self,
        session: AsyncSession,
        source: str,
        destination: str,
        amount: int,
        authority: str,
    ) -> None: ...


class SqlAssetLedger:
    """AssetLedger backed by the token_accounts table."""

    async def open_account(
        self,
        session: AsyncSession,
        address: str,
        owner: str,
        mint: str,
    ) -> TokenAccount:
        if not address or not owner or not mint:
            raise InvalidTokenAccount("address, owner and mint are required")
        if await token_account_repo.exists(session, address):
            raise InvalidTokenAccount("token account already exists", address=address)

        account = TokenAccount(address=address, owner=owner, mint=mint, balance=0)
        await token_account_repo.add(session, account)
        logger.info("token_account_opened", address=address, owner=owner, mint=mint)
        return account

    async def get_account(self, session: AsyncSession, address: str) -> Optional[TokenAccount]:
        return await token_account_repo.get(session, address)

    async def mint_to(self, session: AsyncSession, address: str, amount: int) -> int:
        """Credit new units to an account. Returns the new balance."""
        ensure_u64(amount, "amount")
        account = await token_account_repo.get_or_raise(session, address, for_update=True)
        account.balance = checked_add(account.balance, amount)
        await session.flush()
        logger.info("tokens_minted", address=address, amount=amount)
        return account.balance

    async def balance(self, session: AsyncSession, address: str) -> int:
        account = await token_account_repo.get_or_raise(session, address)
        return account.balance

    async def transfer(
        self,
        session: AsyncSession,
        source: str,
        destination: str,
        amount: int,
        authority: str,
    ) -> None:
        """
        Move `amount` from source to destination.

        Raises:
            NotFound: either account is unknown
            Unauthorized: authority does not own the source account
            InvalidTokenAccount: same account on both sides, or mints differ
            InsufficientFunds: source balance below amount
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidAmount("transfer amount must be a non-negative integer")
        ensure_u64(amount, "amount")
        if source == destination:
            raise InvalidTokenAccount("source and destination are the same account", address=source)

        src = await token_account_repo.get_or_raise(session, source, for_update=True)
        dst = await token_account_repo.get_or_raise(session, destination, for_update=True)

        if src.owner != authority:
            raise Unauthorized("signer does not own the source token account", address=source)
        if src.mint != dst.mint:
            raise InvalidTokenAccount(
                "token accounts hold different mints",
                source_mint=src.mint,
                destination_mint=dst.mint,
            )
        if src.balance < amount:
            raise InsufficientFunds(
                "insufficient token balance",
                address=source,
                balance=src.balance,
                requested=amount,
            )

        if amount == 0:
            return

        src.balance = src.balance - amount
        dst.balance = checked_add(dst.balance, amount)
        await session.flush()

        logger.debug("tokens_transferred", source=source, destination=destination, amount=amount)
