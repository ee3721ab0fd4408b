import os
import shutil
import tempfile
import uuid
from typing import Optional, Sequence, Union

from fastapi import HTTPException, UploadFile

from services.datex.utils.logging import log


async def save_upload_to_tmpdir(
    upload_file: UploadFile,
    suffix: str,
    chunk_size: int = 1024 * 1024,
    max_bytes: Optional[int] = None,
) -> tuple[str, str, int]:
    tmpdir = tempfile.mkdtemp()
    path = os.path.join(tmpdir, f"{uuid.uuid4()}.{suffix}")
    total = 0
    try:
        with open(path, "wb") as dst:
            while True:
                chunk = await upload_file.read(chunk_size)
                if not chunk:
                    break
                total += len(chunk)
                if max_bytes is not None and total > max_bytes:
                    raise HTTPException(
                        status_code=413,
                        detail=f"ファイルサイズが大きすぎます（最大{max_bytes // (1024 * 1024)}MB）。/ File too large.",
                    )
                dst.write(chunk)
    except HTTPException:
        cleanup_temp_dir(tmpdir)
        raise
    return tmpdir, path, total


def cleanup_temp_dir(tmpdir: Optional[str], label: str = "tmpdir") -> None:
    if tmpdir and os.path.exists(tmpdir):
        try:
            shutil.rmtree(tmpdir)
        except OSError as e:
            log(f"[CLEANUP] Failed to remove {label} {tmpdir}: {e}")


def normalize_optional_str(value: Optional[str]) -> Optional[str]:
    if value and value.strip():
        return value.strip()
    return None


def normalize_choice(
    value: Optional[str],
    choices: Sequence[str],
    default: str,
    param_name: str,
) -> str:
    normalized = normalize_optional_str(value) or default
    if normalized not in choices:
        raise HTTPException(
            status_code=400,
            detail=f"{param_name} must be one of {list(choices)}, got: {normalized}",
        )
    return normalized


def normalize_positive_int(
    value: Union[int, str, None],
    param_name: str,
) -> Optional[int]:
    if value is None:
        return None

    if isinstance(value, str):
        if value.strip() == "":
            return None
        try:
            value = int(value)
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"{param_name} must be a valid integer, got: {value}",
            )

    if value <= 0:
        raise HTTPException(
            status_code=400,
            detail=f"{param_name} must be > 0, got: {value}",
        )
    return value
