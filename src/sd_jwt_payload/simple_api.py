"""Simple APIs for the SD-JWT workflow: issue, present, verify."""

import logging
import time
from typing import Any, Optional

from .builder import SdJwtBuilder
from .decoder import DisclosureInput
from .disclosure import Disclosure
from .encoder import SaltGenerator
from .errors import MalformedDisclosure, SdJwtError
from .hasher import Hasher
from .jwk import jwk_get_public
from .jws import ES256
from .key_binding import Jwk, Kid, KeyBindingJwtBuilder
from .pointer import parse_pointer
from .resolvers import KeyResolver
from .sd_jwt import SdJwt, TokenInput, as_sd_jwt
from .signers import CredentialSigner, PresentationSigner
from .thumbprint import JwkThumbprint
from .verifiers import CredentialVerifier, get_presentation_verifier

logger = logging.getLogger(__name__)


def select_disclosures_by_claim_names(
    disclosures: list[DisclosureInput], claim_names: list[str]
) -> list[DisclosureInput]:
    """Select disclosures that match the specified claim names.

    Array element disclosures have no claim name and are never selected.

    Args:
        disclosures: Disclosures as objects or base64url strings
        claim_names: Claim names to select

    Returns:
        The selected disclosures, in their original form and order
    """
    selected = []
    for item in disclosures:
        try:
            disclosure = item if isinstance(item, Disclosure) else Disclosure.parse(item)
        except MalformedDisclosure:
            logger.debug("Skipping malformed disclosure")
            continue
        if disclosure.claim_name is not None and disclosure.claim_name in claim_names:
            selected.append(item)
    return selected


def _leaf_first(pointers: list[str]) -> list[str]:
    # Deeper pointers first, so ancestors capture already concealed children
    return sorted(pointers, key=lambda pointer: len(parse_pointer(pointer)), reverse=True)


class SdJwtIssuer:
    """Simple API for issuing SD-JWTs with selective disclosure."""

    def __init__(
        self,
        issuer_private_key: dict[str, Any],
        hasher: Optional[Hasher] = None,
        salt_generator: Optional[SaltGenerator] = None,
    ):
        """Initialize with issuer's private key.

        Args:
            issuer_private_key: ES256 private JWK
            hasher: Hash function for digests (SHA-256 if None)
            salt_generator: Optional custom salt generator
        """
        self.issuer_key = issuer_private_key
        self.signer = CredentialSigner(issuer_private_key)
        self.hasher = hasher
        self.salt_generator = salt_generator

    def issue_credential(
        self,
        claims: dict[str, Any],
        concealable: list[str],
        holder_public_key: Optional[dict[str, Any]] = None,
        issuer: Optional[str] = None,
        subject: Optional[str] = None,
        issued_at: Optional[int] = None,
        decoys: int = 0,
        use_holder_thumbprint: bool = False,
    ) -> SdJwt:
        """Issue an SD-JWT credential.

        Args:
            claims: Claim set
            concealable: Pointers of the values to make selectively disclosable,
                in any order
            holder_public_key: Holder's JWK for the `cnf` claim (no key binding if None)
            issuer: Optional iss claim
            subject: Optional sub claim
            issued_at: iat claim (current time if None)
            decoys: Number of decoy digests to add at the top level
            use_holder_thumbprint: Put the holder key's thumbprint in `cnf`
                instead of the key itself

        Returns:
            The issued SD-JWT with all disclosures

        Example:
            sd_jwt = issuer.issue_credential(
                claims={"given_name": "John", "address": {"country": "DE"}},
                concealable=["/given_name", "/address/country"],
                holder_public_key=holder_jwk,
            )
        """
        full_claims: dict[str, Any] = {}
        if issuer is not None:
            full_claims["iss"] = issuer
        if subject is not None:
            full_claims["sub"] = subject
        full_claims["iat"] = issued_at if issued_at is not None else int(time.time())
        full_claims.update(claims)

        builder = SdJwtBuilder(full_claims, self.hasher, salt_generator=self.salt_generator)
        for pointer in _leaf_first(concealable):
            builder.conceal(pointer)
        if decoys:
            builder.add_decoys("", decoys)
        builder.set_hash_algorithm_claim()

        if holder_public_key is not None:
            if use_holder_thumbprint:
                builder.require_key_binding(Kid(JwkThumbprint.encoded(holder_public_key)))
            else:
                builder.require_key_binding(Jwk(jwk_get_public(holder_public_key)))

        return builder.finish(self.signer, ES256)


class SdJwtHolder:
    """Simple API for creating SD-JWT presentations."""

    def __init__(self, holder_private_key: dict[str, Any]):
        """Initialize with holder's private key.

        Args:
            holder_private_key: ES256 private JWK
        """
        self.holder_key = holder_private_key
        self.signer = PresentationSigner(holder_private_key)

    def create_presentation(
        self,
        sd_jwt: TokenInput,
        selected_disclosures: list[DisclosureInput],
        audience: str,
        nonce: str,
        issued_at: Optional[int] = None,
    ) -> str:
        """Create a key-bound presentation with selected disclosures.

        Nested disclosures are only usable together with the disclosure
        of the value that contains them.

        Args:
            sd_jwt: The issued SD-JWT
            selected_disclosures: Subset of the token's disclosures to reveal
            audience: Intended audience for the presentation
            nonce: Verifier-provided nonce
            issued_at: KB-JWT iat (current time if None)

        Returns:
            Compact presented SD-JWT with KB-JWT
        """
        token = as_sd_jwt(sd_jwt)
        hasher = token.default_hasher()
        keep = {
            (d if isinstance(d, Disclosure) else Disclosure.parse(d)).encoded
            for d in selected_disclosures
        }

        presentation = token.into_presentation(hasher)
        for disclosure in presentation.disclosures:
            if disclosure.encoded not in keep:
                presentation.conceal_digest(disclosure.digest(hasher))

        kb_builder = KeyBindingJwtBuilder().nonce(nonce).aud(audience)
        if issued_at is not None:
            kb_builder.iat(issued_at)
        binding = token.required_key_bind
        if isinstance(binding, Kid):
            kb_builder.header({"kid": binding.kid})

        kb_jwt = kb_builder.finish(
            presentation.presentation_without_key_binding(), hasher, ES256, self.signer
        )
        presentation.attach_key_binding_jwt(kb_jwt)
        return presentation.finish().presentation()


class SdJwtVerifier:
    """Simple API for verifying SD-JWT presentations."""

    def __init__(self, public_key_resolver: KeyResolver):
        """Initialize with a public key resolver.

        Args:
            public_key_resolver: Function that resolves issuer key IDs to JWKs
        """
        self.credential_verifier = CredentialVerifier(public_key_resolver)

    def verify_presentation(
        self,
        presentation: TokenInput,
        holder_key_resolver: Optional[KeyResolver] = None,
        require_key_binding: bool = True,
    ) -> tuple[bool, Optional[dict[str, Any]]]:
        """Verify an SD-JWT presentation and extract the disclosed claims.

        Key binding is always checked when the credential has a `cnf` claim.

        Args:
            presentation: Presented SD-JWT
            holder_key_resolver: Optional function to resolve holder keys by kid
            require_key_binding: Reject credentials without a `cnf` claim

        Returns:
            Tuple of (is_valid, disclosed_claims)
        """
        try:
            token = as_sd_jwt(presentation)
        except SdJwtError as err:
            logger.warning("Rejected malformed presentation: %s", err)
            return False, None

        is_valid, payload = self.credential_verifier.verify(token)
        if not is_valid or payload is None:
            return False, None

        if "cnf" in payload:
            presentation_verifier = get_presentation_verifier(
                token, self.credential_verifier, holder_key_resolver
            )
            if presentation_verifier is None:
                return False, None
            kb_valid, _ = presentation_verifier.verify(token)
            if not kb_valid:
                return False, None
        elif require_key_binding:
            logger.warning("Rejected credential without a cnf claim")
            return False, None

        try:
            claims = token.into_disclosed_object()
        except SdJwtError as err:
            logger.warning("Rejected presentation: %s", err)
            return False, None

        return True, claims
