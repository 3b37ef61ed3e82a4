"""STS identity adapter."""

from testnvac.core.ports import IdentityPort

from .client import BotoAdapter


class STSIdentityAdapter(BotoAdapter, IdentityPort):
    """Resolves the caller's account through GetCallerIdentity."""

    async def get_caller_account_id(self) -> str:
        """Return the account id of the active credentials."""
        response = await self._call("get_caller_identity")
        return response["Account"]
