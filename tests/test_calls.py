"""Tests for call files and their schema."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from marble.errors import CallFileError
from marble.calls.book import CallBook, CallSpec, load_call
from marble.calls.schemas import CALL_SCHEMA, SchemaRegistry
from marble.utils import MAX_GAS

SAMPLE_BOOK = Path(__file__).resolve().parents[1] / "calls" / "marble.json"


def _write(tmp_path: Path, payload: object, name: str = "call.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestSchema:
    def test_schema_is_valid(self) -> None:
        registry = SchemaRegistry.default()
        registry.validator_for(CALL_SCHEMA)

    @pytest.mark.parametrize(
        "payload",
        [
            {"method": "nft_mint", "colour": "blue"},
            {"args": {}},
            {"method": "nft-mint"},
            {"method": "nft_buy", "deposit": "1", "deposit_near": "1"},
            {"calls": {}},
            {"method": "nft_buy", "args": []},
        ],
    )
    def test_rejected(self, payload: object) -> None:
        with pytest.raises(CallFileError) as excinfo:
            SchemaRegistry.default().validate_instance(payload, CALL_SCHEMA)
        assert excinfo.value.errors
        assert excinfo.value.errors[0].startswith("<root>")


class TestCallSpec:
    def test_defaults(self) -> None:
        spec = CallSpec.from_dict({"method": "nft_token", "args": {"token_id": "2:1"}})
        assert spec.args == {"token_id": "2:1"}
        assert spec.gas is None and spec.deposit is None
        assert not spec.has_attachments

    def test_deposit_near(self) -> None:
        spec = CallSpec.from_dict({"method": "nft_create_series", "deposit_near": "0.00854"})
        assert spec.deposit == 8540000000000000000000
        assert spec.has_attachments

    def test_gas_units(self) -> None:
        assert CallSpec.from_dict({"method": "nft_buy", "gas": "300Tgas"}).gas == MAX_GAS

    def test_bad_gas(self) -> None:
        with pytest.raises(CallFileError, match="nft_buy"):
            CallSpec.from_dict({"method": "nft_buy", "gas": "lots"})


class TestCallBook:
    def test_single_call_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"method": "nft_tokens_for_owner", "args": {"account_id": "a.testnet"}})
        spec = load_call(path)
        assert spec.method == "nft_tokens_for_owner"
        assert spec.args == {"account_id": "a.testnet"}

    def test_select_by_name_and_default(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            {
                "default": "token",
                "calls": {
                    "token": {"method": "nft_token", "args": {"token_id": "2:1"}},
                    "series": {"method": "nft_get_series"},
                },
            },
        )
        book = CallBook.from_path(path)
        assert book.select().method == "nft_token"
        assert book.select("series").method == "nft_get_series"

    def test_single_entry_book_needs_no_name(self) -> None:
        book = CallBook.from_dict({"calls": {"only": {"method": "nft_get_series"}}})
        assert book.select().method == "nft_get_series"

    def test_ambiguous_book(self) -> None:
        book = CallBook.from_dict(
            {"calls": {"a": {"method": "nft_get_series"}, "b": {"method": "nft_token"}}}
        )
        with pytest.raises(CallFileError, match="select one of: a, b"):
            book.select()

    def test_unknown_name(self) -> None:
        book = CallBook.from_dict({"calls": {"a": {"method": "nft_get_series"}}})
        with pytest.raises(CallFileError, match="No call named 'z'"):
            book.select("z")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CallFileError, match="not valid JSON"):
            load_call(path)


class TestSampleBook:
    def test_mint_is_default(self) -> None:
        spec = load_call(SAMPLE_BOOK)
        assert spec.method == "nft_mint"
        assert spec.gas == 300000000000000
        assert spec.deposit == 7000000000000000000000
        assert spec.args["nft_metadata"]["extra"] == "royalty test"

    def test_every_entry_loads(self) -> None:
        book = CallBook.from_path(SAMPLE_BOOK)
        assert book.select("create_series").deposit == 8540000000000000000000
        assert book.select("buy").deposit == 1500000000000000000000000
        assert not book.select("owner_tokens").has_attachments
