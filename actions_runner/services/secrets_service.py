"""
Secrets Service
===============
Pushes repository secrets before the workflow is dispatched.

Flow:
    1. sync mode only: delete repository secrets that are not in the
       requested list (all deletions attempted, failures reported after)
    2. nothing requested: stop here
    3. fetch the repository public key once, seal every value with it and
       upsert all secrets concurrently (fail-last, same as deletions)

Entries are "KEY=VALUE" strings split on the first "=". An entry without a
key or a value is skipped with a warning. Values never reach the logs.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from actions_runner.core.exceptions import SecretsSyncFailedError
from actions_runner.services.github_client import GithubApiClient
from actions_runner.utils.crypto import seal_secret


def parse_secret(entry: str) -> Tuple[str, str]:
    """Split "KEY=VALUE" on the first "="; missing parts come back empty."""
    key, sep, value = entry.partition("=")
    if not sep:
        return key.strip(), ""
    return key.strip(), value


class SecretsSynchronizer:
    """Mirrors a list of KEY=VALUE pairs into the repository's Actions secrets."""

    def __init__(self, client: GithubApiClient, logger: Optional[logging.Logger] = None) -> None:
        self.client = client
        self.logger = logger or logging.getLogger(__name__)

    def _collect(self, desired: Sequence[str]) -> Tuple[Dict[str, str], Set[str]]:
        """Return (valid key -> value, every named key) for the requested entries."""
        valid: Dict[str, str] = {}
        named: Set[str] = set()
        for entry in desired:
            key, value = parse_secret(entry)
            if key:
                named.add(key)
            if not key or not value:
                # Only the key is safe to show
                self.logger.warning(
                    'Skipping malformed secret entry%s, expected "KEY=VALUE"',
                    f' for "{key}"' if key else "",
                )
                continue
            valid[key] = value
        return valid, named

    async def _delete_extra(self, keep: Set[str]) -> None:
        existing = await self.client.list_repo_secret_names()
        to_delete = sorted(set(existing) - keep)
        if not to_delete:
            self.logger.debug("No repository secrets to remove")
            return

        self.logger.info("Removing secrets not in the provided list: %s", ", ".join(to_delete))
        results = await asyncio.gather(
            *(self.client.delete_repo_secret(name) for name in to_delete),
            return_exceptions=True,
        )
        failed: List[str] = []
        for name, result in zip(to_delete, results):
            if isinstance(result, BaseException):
                self.logger.error('Failed to delete secret "%s": %s', name, result)
                failed.append(name)
            else:
                self.logger.debug('Secret "%s" deleted', name)
        if failed:
            raise SecretsSyncFailedError("delete", failed)

    async def _upsert(self, name: str, value: str, key_id: str, public_key: str) -> None:
        encrypted = seal_secret(public_key, value)
        await self.client.set_repo_secret(name, encrypted, key_id)

    async def set_secrets(self, desired: Sequence[str], prune: bool = False) -> None:
        """
        Upsert `desired` secrets, deleting the others first when `prune` is set.

        Raises
        ------
        SecretsSyncFailedError
            After every item was attempted, if at least one delete or upsert failed.
        """
        valid, named = self._collect(desired)

        if prune:
            await self._delete_extra(named)

        if not desired:
            return
        if not valid:
            self.logger.warning("No valid secrets to set")
            return

        public_key = await self.client.get_repo_public_key()

        names = sorted(valid)
        self.logger.info("Setting secrets: %s", ", ".join(names))
        results = await asyncio.gather(
            *(self._upsert(name, valid[name], public_key.key_id, public_key.key) for name in names),
            return_exceptions=True,
        )
        failed: List[str] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                self.logger.error('Failed to set secret "%s": %s', name, result)
                failed.append(name)
            else:
                self.logger.debug('Secret "%s" set', name)
        if failed:
            raise SecretsSyncFailedError("set", failed)
