import io

import pytest
from fastapi import UploadFile

from scoutserver import uploads
from scoutserver.errors import StorageError, ValidationError


class DropsMidway(io.BytesIO):
    """Hands out one chunk, then fails like a client that disconnected."""

    def __init__(self):
        super().__init__(b"x" * 10)
        self.calls = 0

    def read(self, size=-1):
        self.calls += 1
        if self.calls > 1:
            raise OSError("connection reset")
        return super().read(4)


@pytest.mark.asyncio
async def test_save_upload_writes_file(tmp_path):
    result = await uploads.save_upload(
        tmp_path, UploadFile(io.BytesIO(b"robot bytes"), filename="robot.png")
    )
    assert result["success"] is True
    assert result["filePath"] == "/uploads/" + result["filename"]
    assert result["filename"].endswith(".png")
    assert (tmp_path / result["filename"]).read_bytes() == b"robot bytes"


@pytest.mark.asyncio
async def test_failed_upload_leaves_no_partial_file(tmp_path):
    with pytest.raises(StorageError):
        await uploads.save_upload(tmp_path, UploadFile(DropsMidway(), filename="robot.png"))
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_save_upload_needs_a_file(tmp_path):
    with pytest.raises(ValidationError):
        await uploads.save_upload(tmp_path, None)
