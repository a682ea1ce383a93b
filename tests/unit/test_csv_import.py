"""Unit tests for batch CSV storage and parsing."""

import io
from pathlib import Path

import pytest
from fastapi import UploadFile
from services.wallet_service.errors import PipelineFailure
from services.wallet_service.schemas import BatchRow
from services.wallet_service.services.csv_import import (
    load_batch_rows,
    parse_batch_csv,
    save_upload,
)
from pydantic import ValidationError


@pytest.mark.unit
def test_parse_drops_blank_cells_and_rows(write_csv):
    path = write_csv(
        "wallet_name,token_transfer_amount_overwrite\n"
        " Cafe ,25\n"
        "Bakery,\n"
        ",\n"
    )

    rows = parse_batch_csv(path)

    assert rows == [
        {"wallet_name": "Cafe", "token_transfer_amount_overwrite": "25"},
        {"wallet_name": "Bakery"},
    ]


@pytest.mark.unit
def test_parse_handles_utf8_bom(tmp_path):
    path = tmp_path / "bom.csv"
    path.write_bytes("\ufeffwallet_name\nCafé\n".encode("utf-8"))

    assert parse_batch_csv(str(path)) == [{"wallet_name": "Café"}]


@pytest.mark.unit
def test_parse_requires_wallet_name_column(write_csv):
    path = write_csv("name,amount\nCafe,1\n")

    with pytest.raises(PipelineFailure, match="wallet_name"):
        parse_batch_csv(path)


@pytest.mark.unit
def test_parse_rejects_extra_fields(write_csv):
    path = write_csv("wallet_name\nCafe,10\n")

    with pytest.raises(PipelineFailure, match="more fields"):
        parse_batch_csv(path)


@pytest.mark.unit
def test_parse_enforces_row_limit(write_csv):
    path = write_csv("wallet_name\na\nb\nc\n")

    with pytest.raises(PipelineFailure):
        parse_batch_csv(path, max_rows=2)


@pytest.mark.unit
def test_parse_missing_file_is_pipeline_failure(tmp_path):
    with pytest.raises(PipelineFailure) as exc_info:
        parse_batch_csv(str(tmp_path / "missing.csv"))

    assert exc_info.value.status_code == 400
    assert isinstance(exc_info.value.cause, OSError)


@pytest.mark.unit
def test_parse_binary_file_is_pipeline_failure(tmp_path):
    path = tmp_path / "image.csv"
    path.write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe\x00")

    with pytest.raises(PipelineFailure):
        parse_batch_csv(str(path))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_load_batch_rows(write_csv):
    path = write_csv("wallet_name\nCafe\n")

    assert await load_batch_rows(path) == [{"wallet_name": "Cafe"}]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_save_upload_keeps_file(tmp_path):
    upload = UploadFile(file=io.BytesIO(b"wallet_name\nCafe\n"), filename="wallets.csv")

    path = await save_upload(upload, upload_dir=str(tmp_path / "uploads"))

    assert path.endswith(".csv")
    assert Path(path).read_bytes() == b"wallet_name\nCafe\n"


# ---------------------------------------------------------------------------
# BatchRow validation
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,expected",
    [
        ("50", 50),
        ("50.0", 50),
        ("", None),
        (None, None),
        (7, 7),
    ],
)
def test_batch_row_amount_override(raw, expected):
    row = BatchRow(wallet_name="Cafe", token_transfer_amount_overwrite=raw)
    assert row.token_transfer_amount_overwrite == expected


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["abc", "12.5", "-3"])
def test_batch_row_rejects_bad_amount(raw):
    with pytest.raises(ValidationError):
        BatchRow(wallet_name="Cafe", token_transfer_amount_overwrite=raw)


@pytest.mark.unit
def test_batch_row_requires_name():
    with pytest.raises(ValidationError):
        BatchRow(wallet_name="   ")
