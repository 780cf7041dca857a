"""
Blizzard Community API client — character documents for the ingestion run.

Credential setup (.env, gitignored):
  BLIZZARD_CLIENT_ID=your_client_id
  BLIZZARD_CLIENT_SECRET=your_client_secret

OAuth2 flow:
  Client credentials grant — no user interaction needed.
  POST https://{region}.battle.net/oauth/token
    → Body: grant_type=client_credentials
    → Auth: Basic (client_id:client_secret)
    → Returns: {"access_token": "...", "expires_in": 86399}

Character endpoint (after getting token):
  GET https://{region}.api.blizzard.com/wow/character/{realm}/{name}
      ?fields=statistics,items,pets,mounts&locale=en_US

Errors are mapped onto the ``FetchError`` family:
  404                                  → CharacterNotFoundError
  other non-2xx, timeout, transport,
  token failure, undecodable body      → ProviderUnavailableError

Without credentials the client runs in fixture mode and returns a canned
character document, so ``run-ingest`` works offline.
"""

from __future__ import annotations

import asyncio
import base64
import copy
import logging
import time
from typing import Any, ClassVar, Optional
from urllib.parse import quote

import httpx

from wow_stats.errors import CharacterNotFoundError, ProviderUnavailableError
from wow_stats.models.character import CharacterRef

logger = logging.getLogger(__name__)


class BlizzardClient:
    """Async client for character documents.

    Usage (fixture mode — no credentials required)::

        client = BlizzardClient()
        doc = asyncio.run(client.fetch_character(character))

    Usage (real API)::

        client_id, client_secret = blizzard_credentials()
        async with BlizzardClient(client_id, client_secret, region="eu") as client:
            doc = await client.fetch_character(character)

    One client is shared by every task of a run; the OAuth token is fetched
    once and reused until shortly before it expires.
    """

    BASE_URL_TEMPLATE: ClassVar[str] = "https://{region}.api.blizzard.com"
    TOKEN_URL_TEMPLATE: ClassVar[str] = "https://{region}.battle.net/oauth/token"
    CHARACTER_FIELDS: ClassVar[str] = "statistics,items,pets,mounts"

    # Refresh this many seconds before the provider-reported expiry
    TOKEN_EXPIRY_MARGIN_SECONDS: ClassVar[float] = 60.0

    FIXTURE_CHARACTER: ClassVar[dict[str, Any]] = {
        "lastModified": 1571309922000,
        "name": "Fixture",
        "realm": "Area 52",
        "class": 7,
        "race": 2,
        "gender": 0,
        "level": 120,
        "achievementPoints": 21835,
        "totalHonorableKills": 11425,
        "items": {"averageItemLevel": 415, "averageItemLevelEquipped": 414},
        "pets": {"numCollected": 1227, "numNotCollected": 352},
        "mounts": {"numCollected": 260, "numNotCollected": 611},
        "statistics": {
            "id": 0,
            "name": "Statistics",
            "subCategories": [
                {
                    "id": 130,
                    "name": "Character",
                    "statistics": [],
                    "subCategories": [
                        {
                            "id": 147,
                            "name": "Reputation",
                            "statistics": [
                                {"id": 377, "name": "Most factions at Exalted", "quantity": 95},
                            ],
                        },
                    ],
                },
                {
                    "id": 133,
                    "name": "Quests",
                    "statistics": [
                        {"id": 98, "name": "Quests completed", "quantity": 21216},
                    ],
                },
                {
                    "id": 132,
                    "name": "Skills",
                    "statistics": [],
                    "subCategories": [
                        {
                            "id": 178,
                            "name": "Secondary Skills",
                            "statistics": [
                                {"id": 1518, "name": "Fish caught", "quantity": 22306},
                            ],
                        },
                    ],
                },
                {
                    "id": 15219,
                    "name": "Pet Battles",
                    "statistics": [
                        {"id": 8278, "name": "Pet Battles won", "quantity": 1318},
                        {"id": 8286, "name": "PvP Pet Battles won", "quantity": 34},
                    ],
                },
            ],
        },
    }

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        region: str = "us",
        locale: str = "en_US",
        timeout_seconds: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialise the client.

        Args:
            client_id: OAuth2 client ID from BLIZZARD_CLIENT_ID env var.
            client_secret: OAuth2 client secret from BLIZZARD_CLIENT_SECRET env var.
            region: Default region ("us", "eu", "kr", "tw") for token requests.
            locale: Locale passed to the character endpoint.
            timeout_seconds: Per-request timeout.
            transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.region = region
        self.locale = locale
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None
        self._access_token: Optional[str] = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def is_fixture_mode(self) -> bool:
        return not (self.client_id and self.client_secret)

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "BlizzardClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ── Public API ─────────────────────────────────────────────────────────────

    async def fetch_character(self, character: CharacterRef) -> dict[str, Any]:
        """Fetch the full character document used for counter extraction.

        Raises:
            CharacterNotFoundError: The provider returned 404.
            ProviderUnavailableError: Any other failure.
        """
        if self.is_fixture_mode:
            return self.get_fixture_document(character.name, character.realm)
        return await self._get_character(
            character.name, character.realm, character.region, fields=self.CHARACTER_FIELDS
        )

    async def fetch_profile(self, name: str, realm: str, region: Optional[str] = None) -> dict[str, Any]:
        """Fetch the basic character profile (race, class, gender) without extra fields.

        Used to verify a character exists before adding it to the roster.

        Raises:
            CharacterNotFoundError: The provider returned 404.
            ProviderUnavailableError: Any other failure.
        """
        if self.is_fixture_mode:
            return self.get_fixture_document(name, realm)
        return await self._get_character(name, realm, region or self.region)

    # ── Token management ───────────────────────────────────────────────────────

    async def _ensure_token(self) -> str:
        """Return a cached access token, fetching a new one when needed.

        Concurrent callers wait on one lock so only a single token request
        is made per expiry.

        Raises:
            ProviderUnavailableError: The token endpoint failed.
        """
        async with self._token_lock:
            if self._access_token is not None and time.monotonic() < self._token_expires_at:
                return self._access_token

            token_url = self.TOKEN_URL_TEMPLATE.format(region=self.region)
            credentials = base64.b64encode(
                f"{self.client_id}:{self.client_secret}".encode()
            ).decode()

            try:
                resp = await self._client().post(
                    token_url,
                    headers={
                        "Authorization": f"Basic {credentials}",
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                    data={"grant_type": "client_credentials"},
                )
            except httpx.HTTPError as exc:
                raise ProviderUnavailableError(f"Token request failed: {exc!r}") from exc

            if resp.status_code != 200:
                raise ProviderUnavailableError(
                    f"Token request failed with HTTP {resp.status_code}."
                )
            try:
                body = resp.json()
                token = body["access_token"]
            except (ValueError, KeyError, TypeError) as exc:
                raise ProviderUnavailableError("Token response missing access_token.") from exc

            expires_in = float(body.get("expires_in", 0) or 0)
            self._access_token = token
            self._token_expires_at = (
                time.monotonic() + max(expires_in - self.TOKEN_EXPIRY_MARGIN_SECONDS, 0.0)
                if expires_in
                else float("inf")
            )
            logger.info("Blizzard OAuth2 token obtained for region=%s", self.region)
            return token

    # ── Requests ───────────────────────────────────────────────────────────────

    def character_url(self, name: str, realm: str, region: str) -> str:
        base = self.BASE_URL_TEMPLATE.format(region=region)
        return f"{base}/wow/character/{quote(realm, safe='')}/{quote(name, safe='')}"

    async def _get_character(
        self, name: str, realm: str, region: str, fields: Optional[str] = None
    ) -> dict[str, Any]:
        token = await self._ensure_token()
        params = {"locale": self.locale}
        if fields:
            params["fields"] = fields

        label = f"{name}-{realm}"
        try:
            resp = await self._client().get(
                self.character_url(name, realm, region),
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            raise ProviderUnavailableError(f"{label}: request timed out.") from exc
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(f"{label}: transport error {exc!r}") from exc

        if resp.status_code == 404:
            raise CharacterNotFoundError(f"{label} not found in region {region}.")
        if resp.status_code == 401:
            # Token revoked early; the next request fetches a fresh one.
            self._access_token = None
        if resp.status_code != 200:
            raise ProviderUnavailableError(f"{label}: HTTP {resp.status_code}.")

        try:
            document = resp.json()
        except ValueError as exc:
            raise ProviderUnavailableError(f"{label}: response body is not JSON.") from exc
        if not isinstance(document, dict):
            raise ProviderUnavailableError(f"{label}: response body is not a JSON object.")

        logger.debug("Fetched %s (%d bytes)", label, len(resp.content))
        return document

    # ── Fixture / stub mode ────────────────────────────────────────────────────

    def get_fixture_document(self, name: str, realm: str) -> dict[str, Any]:
        """Return a copy of the fixture character document tagged with ``name``/``realm``."""
        document = copy.deepcopy(self.FIXTURE_CHARACTER)
        document["name"] = name
        document["realm"] = realm
        logger.debug("BlizzardClient: returning fixture document for %s-%s", name, realm)
        return document
