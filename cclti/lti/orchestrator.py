"""LTI 1.3 login initiation and launch handshake."""

import secrets
from collections.abc import Callable
from datetime import UTC, datetime
from urllib.parse import urlencode

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cclti.core.errors import (
    KeyNotFound,
    MissingParameter,
    NonceInvalidOrReused,
    StateInvalidOrReused,
)
from cclti.core.settings import LtiSettings
from cclti.crypto.asn1 import jwk_to_pem, load_rsa_public_key
from cclti.crypto.jwt_verifier import parse_token, verify_signature
from cclti.db.repo_course import (
    DEFAULT_COURSE_TITLE,
    CourseUpsertData,
    UserUpsertData,
)
from cclti.db.repo_replay import LoginStateRecord, ReplayStore
from cclti.lti.claims import check_token_claims, derive_role, parse_launch_claims
from cclti.lti.jwks import JwksFetcher, select_jwk
from cclti.lti.provisioning import provision_session
from cclti.lti.registry import PlatformRegistry
from cclti.lti.types import Launch, LaunchOutcome, LoginInitiate, LoginRedirect

logger = structlog.get_logger(__name__)

TOKEN_BYTES = 32


def _utcnow() -> datetime:
    return datetime.now(UTC)


def generate_login_token() -> str:
    """Generate a random state or nonce value."""
    return secrets.token_urlsafe(TOKEN_BYTES)


class LaunchOrchestrator:
    """Runs the two halves of the LTI handshake.

    Collaborators are injected so tests can substitute the registry, the
    replay store and the JWKS fetcher.
    """

    def __init__(
        self,
        *,
        registry: PlatformRegistry,
        store: ReplayStore,
        fetcher: JwksFetcher,
        db: AsyncSession,
        settings: LtiSettings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._registry = registry
        self._store = store
        self._fetcher = fetcher
        self._db = db
        self._settings = settings
        self._clock = clock

    async def handle(
        self, command: LoginInitiate | Launch
    ) -> LoginRedirect | LaunchOutcome:
        """Dispatch a login-initiation or launch command."""
        if isinstance(command, LoginInitiate):
            return await self.initiate_login(command)
        return await self.launch(command)

    async def initiate_login(self, command: LoginInitiate) -> LoginRedirect:
        """Mint state and nonce and build the platform auth redirect."""
        iss = command.iss.strip()
        client_id = command.client_id.strip()
        if not iss:
            raise MissingParameter("Missing iss parameter")

        platform = self._registry.resolve(iss, client_id or None)

        now = self._clock()
        await self._store.sweep_expired(now=now)

        state = generate_login_token()
        nonce = generate_login_token()
        target_link_uri = command.target_link_uri.strip() or f"{self._settings.base_url}/"
        await self._store.put_state(
            LoginStateRecord(
                state=state,
                nonce=nonce,
                issuer=iss,
                client_id=platform.client_id,
                target_link_uri=target_link_uri,
            ),
            now=now,
            ttl_seconds=self._settings.state_ttl,
        )
        await self._store.put_nonce(nonce, now=now, ttl_seconds=self._settings.state_ttl)

        params = urlencode(
            {
                "scope": "openid",
                "response_type": "id_token",
                "client_id": platform.client_id,
                "redirect_uri": self._settings.launch_url,
                "login_hint": command.login_hint.strip(),
                "lti_message_hint": command.lti_message_hint.strip(),
                "state": state,
                "nonce": nonce,
                "response_mode": "form_post",
                "prompt": "none",
            }
        )
        separator = "&" if "?" in platform.auth_endpoint else "?"
        logger.info("lti_login_initiated", issuer=iss, client_id=platform.client_id)
        return LoginRedirect(
            url=f"{platform.auth_endpoint}{separator}{params}",
            state=state,
            nonce=nonce,
        )

    async def launch(self, command: Launch) -> LaunchOutcome:
        """Verify the platform's id_token and issue a session.

        Gates run in order and the first failure aborts the launch. The state
        and nonce deletions are committed as soon as they happen, so they stay
        consumed whatever fails afterwards.
        """
        if not command.id_token or not command.state:
            raise MissingParameter("Missing id_token or state")

        now = self._clock()
        login_state = await self._store.consume_state(command.state, now=now)
        await self._db.commit()
        if login_state is None:
            raise StateInvalidOrReused("Invalid, expired or already used state")

        platform = self._registry.resolve(login_state.issuer, login_state.client_id)

        parsed = parse_token(command.id_token)

        keys = await self._fetcher.fetch(platform.jwks_uri)
        jwk = select_jwk(keys, parsed.kid)
        try:
            public_key = load_rsa_public_key(jwk_to_pem(jwk.n or "", jwk.e or ""))
        except ValueError as exc:
            raise KeyNotFound(f"JWK {jwk.kid!r} is not a usable RSA key: {exc}") from exc

        verify_signature(parsed, public_key)
        check_token_claims(
            parsed.payload,
            issuer=login_state.issuer,
            client_id=platform.client_id,
            expected_nonce=login_state.nonce,
            now=int(now.timestamp()),
            clock_skew=self._settings.clock_skew,
        )
        nonce_live = await self._store.consume_nonce(login_state.nonce, now=now)
        await self._db.commit()
        if not nonce_live:
            raise NonceInvalidOrReused("Nonce expired or already used")
        claims, context = parse_launch_claims(parsed.payload)

        role = derive_role(claims.roles)
        outcome = await provision_session(
            self._db,
            user=UserUpsertData(
                sub=claims.sub,
                issuer=login_state.issuer,
                name=claims.display_name,
                given_name=claims.given_name or "",
                family_name=claims.family_name or "",
                email=claims.email or "",
                picture=claims.picture or "",
            ),
            course=CourseUpsertData(
                issuer=login_state.issuer,
                context_id=context.id,
                title=context.title or DEFAULT_COURSE_TITLE,
                label=context.label or "",
            ),
            role=role,
            now=now,
            session_ttl=self._settings.session_ttl,
        )
        logger.info(
            "lti_launch_succeeded",
            issuer=login_state.issuer,
            context_id=context.id,
            role=role,
            user_id=outcome.identity.user_id,
        )
        return outcome
