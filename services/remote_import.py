"""
Remote Rule Import - Fetch, validate and merge rule sets over HTTP(S)
=====================================================================

Operators can pull a shared rule set from a URL. An import only runs
when fetching is enabled and the URL's host is whitelisted; the body
must be a JSON rule array that passes validation. The fetched rules
are merged into the current set by identity, written to the rules
file and reloaded. A dry run stops after the merge so the result can
be previewed before anything is written.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from core.config import SettingsManager
from core.exceptions import (
    FetchDisabledError,
    FetchError,
    HostNotAllowedError,
    PersistenceError,
    RuleParseError,
)
from core.logging import get_logger
from rules.model import Rule
from rules.store import RuleStore, merge_rules, parse_rules

logger = get_logger("services.remote_import")

ALLOWED_SCHEMES = ("http", "https")


@dataclass
class ImportResult:
    """
    Outcome of a remote import.

    Attributes:
        url (str): Source URL
        rules (list): Merged rule list
        fetched (int): Number of rules in the remote document
        added (int): Rules appended to the set
        overwritten (int): Existing rules replaced
        saved (bool): Whether the rules file was written
    """
    url: str
    rules: List[Rule] = field(default_factory=list)
    fetched: int = 0
    added: int = 0
    overwritten: int = 0
    saved: bool = False

    @property
    def summary(self) -> str:
        """Human-readable one-line summary."""
        action = "Imported" if self.saved else "Preview of"
        return (
            f"{action} {self.fetched} rules from {self.url}: "
            f"{self.added} added, {self.overwritten} overwritten, "
            f"{len(self.rules)} total."
        )


class RuleImporter:
    """
    Imports rules from whitelisted URLs.

    Example:
        importer = RuleImporter(settings_manager, store)
        try:
            result = importer.import_rules("https://example.org/rules.json")
            print(result.summary)
        except RemoteImportError as e:
            print(e)
    """

    def __init__(
        self,
        settings: SettingsManager,
        store: RuleStore,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize the importer.

        Args:
            settings: Settings manager (fetch flag, whitelist, timeout)
            store: Rule store to merge into
            transport: Optional httpx transport, e.g. for tests
        """
        self.settings = settings
        self.store = store
        self.transport = transport

    def check_url(self, url: str) -> str:
        """
        Check that a URL may be fetched.

        Args:
            url: URL supplied by the operator

        Returns:
            The URL's hostname

        Raises:
            FetchDisabledError: If fetching is disabled
            HostNotAllowedError: If the scheme or host is not allowed
        """
        settings = self.settings.settings
        if not settings.enable_fetch:
            raise FetchDisabledError(
                "Fetching rules from URLs is disabled. Enable it with 'enable_fetch' in the settings file."
            )

        # Same parser as the fetch, so anything that passes here can be requested
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise HostNotAllowedError(f"Invalid URL: {url[:200]}", details={"error": str(e)})

        hostname = parsed.host or ""

        if parsed.scheme not in ALLOWED_SCHEMES or not hostname:
            raise HostNotAllowedError(f"Invalid URL: {url[:200]}", hostname=hostname)

        if not settings.is_host_allowed(hostname):
            raise HostNotAllowedError(
                f"Domain '{hostname}' is not in the fetch whitelist.", hostname=hostname
            )

        return hostname

    def fetch(self, url: str) -> List[Rule]:
        """
        Download and validate a remote rule set.

        Args:
            url: Whitelisted URL

        Returns:
            Parsed rules

        Raises:
            FetchError: On network failures and non-2xx responses
            RuleParseError: If the body is not JSON
            RuleValidationError: If the document fails validation
        """
        logger.info(f"Fetching rules from {url}")

        try:
            with httpx.Client(
                timeout=self.settings.settings.fetch_timeout,
                follow_redirects=False,
                transport=self.transport,
            ) as client:
                response = client.get(url, headers={"Accept": "application/json"})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"Failed to fetch rules from {url}: {e}")

        if not response.is_success:
            raise FetchError(
                f"Failed to fetch rules from {url}: server answered {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RuleParseError(f"The content from {url} is not valid JSON.", {"error": str(e)})

        return parse_rules(data)

    def import_rules(self, url: str, dry_run: bool = False) -> ImportResult:
        """
        Fetch, merge and persist a remote rule set.

        Args:
            url: URL supplied by the operator
            dry_run: Only compute the merge, write nothing

        Returns:
            ImportResult

        Raises:
            RemoteImportError: If the URL is refused or the fetch fails
            RuleParseError: If the body is not JSON
            RuleValidationError: If the document fails validation
            PersistenceError: If the merged rules cannot be saved
        """
        self.check_url(url)
        incoming = self.fetch(url)

        merged = merge_rules(self.store.get_rules(), incoming)
        result = ImportResult(
            url=url,
            rules=merged.rules,
            fetched=len(incoming),
            added=merged.added,
            overwritten=merged.overwritten,
        )

        if dry_run:
            logger.info(result.summary)
            return result

        if not self.store.save(merged.rules):
            raise PersistenceError(
                f"Fetched rules from {url} but could not save them to {self.store.rules_path}."
            )

        result.saved = True
        self.store.load()
        logger.info(result.summary)
        return result
