"""sd-jwt-payload: Selective Disclosure for JWTs (SD-JWT)."""

# Hide module imports
from . import (
    builder,
    decoder,
    disclosure,
    encoder,
    errors,
    hasher,
    jwk,
    jws,
    jwt,
    key_binding,
    resolvers,
    sd_jwt,
    signers,
    verifiers,
)
from .builder import SdJwtBuilder
from .decoder import SdObjectDecoder, decode
from .disclosure import Disclosure
from .encoder import (
    DEFAULT_SALT_SIZE,
    SaltGenerator,
    SdObjectEncoder,
    SecureSaltGenerator,
    SeededSaltGenerator,
)
from .errors import (
    AlreadyConcealed,
    BuilderStateError,
    ClaimNameCollision,
    DataTypeMismatch,
    DuplicateDigest,
    IndexOutOfBounds,
    IntegrityError,
    InvalidArrayDisclosureObject,
    InvalidPath,
    InvalidSaltSize,
    MalformedCompactSerialization,
    MalformedDisclosure,
    MismatchedDisclosureKind,
    MissingSdAlg,
    NotFound,
    SdJwtError,
    SigningFailure,
    StructuralError,
    UnsupportedHashAlgorithm,
    UnusedDisclosure,
)
from .hasher import SHA_ALG_NAME, Hasher, Sha256Hasher, Sha384Hasher, Sha512Hasher, hasher_for
from .jwk import jwk_generate, jwk_get_public, jwk_to_private_key, jwk_to_public_key
from .jws import ES256Signer, ES256Verifier, JwsSigner, Signer, Verifier, jws_sign, jws_verify
from .jwt import Jwt
from .key_binding import (
    KB_JWT_HEADER_TYP,
    Jwk,
    KeyBindingJwt,
    KeyBindingJwtBuilder,
    KeyBindingJwtClaims,
    Kid,
    RequiredKeyBinding,
)
from .resolvers import jwk_kid_resolver, jwk_thumbprint_resolver
from .sd_jwt import HEADER_TYP, SdJwt, SdJwtPresentationBuilder
from .signers import (
    CredentialSigner,
    PresentationSigner,
    create_credential_signer,
    create_presentation_signer,
)
from .simple_api import (
    SdJwtHolder,
    SdJwtIssuer,
    SdJwtVerifier,
    select_disclosures_by_claim_names,
)
from .thumbprint import JwkThumbprint
from .verifiers import (
    CredentialVerifier,
    PresentationVerifier,
    get_presentation_verifier,
)

del builder, decoder, disclosure, encoder, hasher, jwk, jws, jwt, key_binding
del resolvers, sd_jwt, signers, verifiers

__version__ = "0.1.0"


__all__ = [
    "__version__",
    # Issuance
    "SdJwtBuilder",
    "SdObjectEncoder",
    "DEFAULT_SALT_SIZE",
    # Salt generators for deterministic testing
    "SaltGenerator",
    "SecureSaltGenerator",
    "SeededSaltGenerator",
    # Decoding
    "SdObjectDecoder",
    "decode",
    "Disclosure",
    # Tokens and presentations
    "HEADER_TYP",
    "Jwt",
    "SdJwt",
    "SdJwtPresentationBuilder",
    # Key binding
    "KB_JWT_HEADER_TYP",
    "RequiredKeyBinding",
    "Kid",
    "Jwk",
    "KeyBindingJwt",
    "KeyBindingJwtBuilder",
    "KeyBindingJwtClaims",
    # Hashers
    "SHA_ALG_NAME",
    "Hasher",
    "Sha256Hasher",
    "Sha384Hasher",
    "Sha512Hasher",
    "hasher_for",
    # JWS - Core functions
    "jws_sign",
    "jws_verify",
    # Protocols for custom implementations
    "JwsSigner",
    "Signer",
    "Verifier",
    "ES256Signer",
    "ES256Verifier",
    # JWK - Core functions
    "jwk_generate",
    "jwk_get_public",
    "jwk_to_private_key",
    "jwk_to_public_key",
    "JwkThumbprint",
    # Verifiers for credential and presentation verification
    "CredentialVerifier",
    "PresentationVerifier",
    "get_presentation_verifier",
    # Signers for credential and presentation signing
    "CredentialSigner",
    "PresentationSigner",
    "create_credential_signer",
    "create_presentation_signer",
    # Resolvers for dynamic key resolution
    "jwk_kid_resolver",
    "jwk_thumbprint_resolver",
    # Simple APIs for the SD-JWT workflow
    "select_disclosures_by_claim_names",
    "SdJwtIssuer",
    "SdJwtHolder",
    "SdJwtVerifier",
    # Errors
    "SdJwtError",
    "StructuralError",
    "IntegrityError",
    "SigningFailure",
    "InvalidPath",
    "IndexOutOfBounds",
    "AlreadyConcealed",
    "MalformedDisclosure",
    "MalformedCompactSerialization",
    "MismatchedDisclosureKind",
    "DataTypeMismatch",
    "InvalidArrayDisclosureObject",
    "InvalidSaltSize",
    "NotFound",
    "BuilderStateError",
    "DuplicateDigest",
    "UnusedDisclosure",
    "ClaimNameCollision",
    "UnsupportedHashAlgorithm",
    "MissingSdAlg",
]
