"""Canonical verdict hashing, signing and verification.

The signing key is derived once from a configured seed and held by a
`VerdictSigner` for the life of the process. Verification only answers
"was this verdict signed by our configured key": it checks the signature
against the local signer's public key and requires the claimed signer to
be that key. It never trusts a public key supplied with the document.
"""

import hashlib
import json
import logging
import time

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from debate_council.models import CouncilVerdict, SignedVerdict, VerificationResult
from debate_council.schemas import to_dict

logger = logging.getLogger(__name__)

_KDF_INFO = "debate-council/verdict-signer/{index}"


def _vote_order(data: dict) -> dict[str, int]:
    """vote_count keyed in order of each winner's first judgment."""
    votes = data["vote_count"]
    order = [j["evaluation"]["winner"] for j in data["individual_judgments"]]
    ranked = sorted(votes, key=lambda name: (order.index(name) if name in order else len(order), name))
    return {name: votes[name] for name in ranked}


def canonical_bytes(verdict: CouncilVerdict) -> bytes:
    """Compact JSON with the top-level keys sorted.

    Nested objects keep their dataclass field order and are not re-sorted.
    vote_count follows the order in which each winner first appears in
    individual_judgments, so a map reordered by another JSON tool hashes
    the same.
    """
    data = to_dict(verdict)
    data["vote_count"] = _vote_order(data)
    ordered = {key: data[key] for key in sorted(data)}
    return json.dumps(ordered, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def hash_verdict(verdict: CouncilVerdict) -> str:
    """Hex SHA-256 of the canonical verdict bytes."""
    return hashlib.sha256(canonical_bytes(verdict)).hexdigest()


class VerdictSigner:
    """Holds the process signing key. Build once at startup with from_seed()."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self.address = self._public_key.public_bytes_raw().hex()

    @classmethod
    def from_seed(cls, seed: str, derivation_index: int = 0) -> "VerdictSigner":
        """Derive the key deterministically; the same seed and index give the same address."""
        if not seed:
            raise ValueError("A signing seed is required")
        key_bytes = HKDF(
            algorithm=hashes.SHA256(),
            length=32,
            salt=None,
            info=_KDF_INFO.format(index=derivation_index).encode("utf-8"),
        ).derive(seed.encode("utf-8"))
        signer = cls(Ed25519PrivateKey.from_private_bytes(key_bytes))
        logger.info("Initialized verdict signer: %s", signer.address)
        return signer

    def sign(self, verdict: CouncilVerdict) -> SignedVerdict:
        """Hash the verdict and sign the raw 32-byte digest."""
        digest = hashlib.sha256(canonical_bytes(verdict)).digest()
        signature = self._private_key.sign(digest)
        signed = SignedVerdict(
            verdict=verdict,
            hash=digest.hex(),
            signature=signature.hex(),
            signer_address=self.address,
            timestamp=int(time.time() * 1000),
        )
        logger.info("Verdict signed by %s, hash %s", self.address, signed.hash)
        return signed

    def verify_digest(self, digest: bytes, signature: bytes) -> bool:
        try:
            self._public_key.verify(signature, digest)
        except InvalidSignature:
            return False
        return True


class VerdictVerifier:
    """Checks signed verdicts against the process's own signer."""

    def __init__(self, signer: VerdictSigner) -> None:
        self._signer = signer

    def verify(
        self,
        verdict: CouncilVerdict,
        hash_hex: str,
        signature_hex: str,
        claimed_signer: str,
    ) -> VerificationResult:
        expected_signer = self._signer.address
        computed = hash_verdict(verdict)
        if computed.lower() != hash_hex.lower():
            logger.info("Verdict hash mismatch: expected %s, got %s", computed, hash_hex)
            return VerificationResult(valid=False, hash_match=False, expected_signer=expected_signer)

        try:
            signature = bytes.fromhex(signature_hex)
        except ValueError:
            logger.warning("Signature is not valid hex")
            return VerificationResult(valid=False, hash_match=True, expected_signer=expected_signer)

        signature_valid = self._signer.verify_digest(bytes.fromhex(computed), signature)
        signer_matches = claimed_signer.lower() == expected_signer.lower()
        return VerificationResult(
            valid=signature_valid and signer_matches,
            hash_match=True,
            expected_signer=expected_signer,
            signature_valid=signature_valid,
        )

    def verify_signed(self, signed: SignedVerdict) -> VerificationResult:
        return self.verify(signed.verdict, signed.hash, signed.signature, signed.signer_address)
