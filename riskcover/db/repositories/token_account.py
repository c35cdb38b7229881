"""Token account repository."""

from riskcover.db.models import TokenAccount
from riskcover.db.repositories.base import BaseRepository


class TokenAccountRepository(BaseRepository[TokenAccount]):
    label = "token account"

    def __init__(self):
        super().__init__(TokenAccount)


token_account_repo = TokenAccountRepository()
