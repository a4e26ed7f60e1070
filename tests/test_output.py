"""Tests for debate_council/output.py."""

import json
from pathlib import Path

import pytest

from debate_council.council import aggregate_judgments
from debate_council.models import DebateMetadata, SignedVerdict, VerificationResult
from debate_council.output import (
    JsonFileStore,
    _slug,
    load_signed_verdict,
    print_verdict,
    print_verification,
)
from debate_council.schemas import to_dict
from tests.conftest import make_judgment


def test_slug_basic():
    assert _slug("Should remote work be default?") == "should-remote-work-be-default"


def test_slug_max_len():
    assert len(_slug("a" * 100)) <= 40


def test_slug_special_chars():
    result = _slug("API vs. SDK (2024)")
    assert "." not in result
    assert "(" not in result
    assert ")" not in result


@pytest.fixture
def signed(signer) -> SignedVerdict:
    verdict = aggregate_judgments([make_judgment("Grok", "Pro-remote"), make_judgment("Claude", "Pro-remote")])
    return signer.sign(verdict)


@pytest.fixture
def metadata() -> DebateMetadata:
    return DebateMetadata(topic="Should remote work be default?", description="Office hours")


def test_save_creates_output_dir(tmp_path: Path, metadata, sample_transcript, signed):
    output_dir = tmp_path / "nested" / "judgments"
    judgment_id = JsonFileStore(output_dir).save(metadata, sample_transcript, signed)
    assert judgment_id
    [saved] = list(output_dir.glob("*.json"))
    assert "should-remote-work" in saved.name
    assert judgment_id[:8] in saved.name


def test_saved_document_shape(tmp_path: Path, metadata, sample_transcript, signed):
    judgment_id = JsonFileStore(tmp_path).save(metadata, sample_transcript, signed)
    [saved] = list(tmp_path.glob("*.json"))
    document = json.loads(saved.read_text(encoding="utf-8"))
    assert document["id"] == judgment_id
    assert document["metadata"]["description"] == "Office hours"
    assert document["transcript"]["speakers"][0]["id"] == "Pro-remote"
    assert document["signed_verdict"]["hash"] == signed.hash
    assert document["signed_verdict"]["verdict"]["final_winner"] == "Pro-remote"


def test_save_failure_returns_none(tmp_path: Path, metadata, sample_transcript, signed):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    assert JsonFileStore(blocker).save(metadata, sample_transcript, signed) is None


def test_load_round_trip(tmp_path: Path, metadata, sample_transcript, signed):
    JsonFileStore(tmp_path).save(metadata, sample_transcript, signed)
    [saved] = list(tmp_path.glob("*.json"))
    assert load_signed_verdict(saved) == signed


def test_load_bare_signed_verdict(tmp_path: Path, signed):
    path = tmp_path / "signed.json"
    path.write_text(json.dumps(to_dict(signed)), encoding="utf-8")
    assert load_signed_verdict(path).signature == signed.signature


def test_load_rejects_other_documents(tmp_path: Path):
    path = tmp_path / "other.json"
    path.write_text(json.dumps({"hello": "world"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_signed_verdict(path)


def test_print_verdict_mentions_winner(signed, capsys):
    print_verdict(signed.verdict)
    out = capsys.readouterr().out
    assert "Pro-remote" in out
    assert "unanimous" in out


@pytest.mark.parametrize(
    "result, expected",
    [
        (VerificationResult(valid=True, hash_match=True, expected_signer="ab", signature_valid=True), "VALID"),
        (VerificationResult(valid=False, hash_match=False, expected_signer="ab"), "does not match its hash"),
        (VerificationResult(valid=False, hash_match=True, expected_signer="ab"), "signature does not verify"),
        (
            VerificationResult(valid=False, hash_match=True, expected_signer="ab", signature_valid=True),
            "not the configured signer",
        ),
    ],
)
def test_print_verification(result, expected, capsys):
    print_verification(result)
    assert expected in capsys.readouterr().out
