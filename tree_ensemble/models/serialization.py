# tree_ensemble/models/serialization.py
"""Versioned binary model format.

Layout::

    header  : struct "<8sHQI"  magic, format version, payload length, crc32(payload)
    payload : uint32 meta length | meta JSON (utf-8) | .npy blob per tree field

Tree arrays are written with ``numpy.lib.format`` (no pickling), tree by
tree in ``TREE_FIELDS`` order. Meta JSON is written with sorted keys so
saving a loaded model reproduces the same bytes.
"""

import io
import json
import struct
import zlib
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Tuple, Union

import numpy as np

from ..utils.exceptions import FileOperationError, FormatError, ModelIOError, handle_and_reraise
from ..utils.logger import get_logger
from .tree import TREE_FIELDS, Tree

logger = get_logger(__name__)

MAGIC = b"TENSBLOB"
FORMAT_VERSION = 1
HEADER = struct.Struct("<8sHQI")
META_LENGTH = struct.Struct("<I")

Source = Union[str, Path, bytes, bytearray, memoryview, BinaryIO]
Target = Union[str, Path, BinaryIO]


def _json_default(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_model(meta: Dict[str, Any], trees: List[Tree]) -> bytes:
    """Serialize model metadata and trees into the binary format.

    Args:
        meta: JSON-serializable model metadata
        trees: Trees in round order

    Returns:
        Complete model bytes (header and payload)
    """
    meta = dict(meta)
    meta["tree_sizes"] = [tree.num_nodes for tree in trees]
    try:
        meta_bytes = json.dumps(meta, sort_keys=True, default=_json_default).encode("utf-8")
    except (TypeError, ValueError) as e:
        handle_and_reraise(
            e, FileOperationError,
            "Model metadata is not serializable",
            error_code="META_NOT_SERIALIZABLE"
        )

    payload = io.BytesIO()
    payload.write(META_LENGTH.pack(len(meta_bytes)))
    payload.write(meta_bytes)
    for tree in trees:
        for name in TREE_FIELDS:
            np.lib.format.write_array(payload, getattr(tree, name), allow_pickle=False)

    body = payload.getvalue()
    header = HEADER.pack(MAGIC, FORMAT_VERSION, len(body), zlib.crc32(body) & 0xFFFFFFFF)
    return header + body


def decode_model(raw: bytes) -> Tuple[Dict[str, Any], List[Tree]]:
    """Parse bytes produced by :func:`encode_model`.

    Raises:
        FormatError: On bad magic, unknown version, truncation, checksum
            mismatch or malformed content
    """
    raw = bytes(raw)
    if len(raw) < HEADER.size:
        raise FormatError(
            f"Model data too short: {len(raw)} bytes",
            error_code="TRUNCATED_HEADER",
            context={'size': len(raw)}
        )

    magic, version, length, checksum = HEADER.unpack_from(raw, 0)
    if magic != MAGIC:
        raise FormatError("Not a tree_ensemble model (bad magic)", error_code="BAD_MAGIC")
    if version != FORMAT_VERSION:
        raise FormatError(
            f"Unsupported model format version {version}",
            error_code="UNSUPPORTED_FORMAT_VERSION",
            context={'version': version, 'supported': FORMAT_VERSION}
        )

    body = raw[HEADER.size:]
    if len(body) != length:
        raise FormatError(
            f"Model payload is {len(body)} bytes, header declares {length}",
            error_code="TRUNCATED_PAYLOAD",
            context={'expected': length, 'actual': len(body)}
        )
    if zlib.crc32(body) & 0xFFFFFFFF != checksum:
        raise FormatError("Model payload checksum mismatch", error_code="CHECKSUM_MISMATCH")

    try:
        return _decode_payload(body)
    except FormatError:
        raise
    except (ValueError, KeyError, TypeError, struct.error, UnicodeDecodeError, EOFError) as e:
        handle_and_reraise(
            e, FormatError,
            "Malformed model payload",
            error_code="MALFORMED_PAYLOAD"
        )


def _decode_payload(body: bytes) -> Tuple[Dict[str, Any], List[Tree]]:
    stream = io.BytesIO(body)
    (meta_length,) = META_LENGTH.unpack(stream.read(META_LENGTH.size))
    meta_bytes = stream.read(meta_length)
    if len(meta_bytes) != meta_length:
        raise FormatError("Model metadata truncated", error_code="TRUNCATED_META")
    meta = json.loads(meta_bytes.decode("utf-8"))
    if not isinstance(meta, dict):
        raise FormatError("Model metadata must be a JSON object", error_code="MALFORMED_META")

    trees: List[Tree] = []
    for expected_nodes in meta["tree_sizes"]:
        arrays = {
            name: np.lib.format.read_array(stream, allow_pickle=False)
            for name in TREE_FIELDS
        }
        tree = Tree.from_arrays(arrays)
        if tree.num_nodes != int(expected_nodes):
            raise FormatError(
                f"Tree has {tree.num_nodes} nodes, metadata declares {expected_nodes}",
                error_code="TREE_SIZE_MISMATCH"
            )
        trees.append(tree)

    if stream.read(1):
        raise FormatError("Unexpected trailing data in model payload", error_code="TRAILING_DATA")
    return meta, trees


def read_source(source: Source) -> bytes:
    """Read model bytes from a path, a binary stream or a bytes object.

    Raises:
        ModelIOError: If the location cannot be read
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return path.read_bytes()
        except OSError as e:
            handle_and_reraise(
                e, ModelIOError,
                f"Cannot read model from {path}",
                error_code="MODEL_READ_FAILED",
                context={'path': str(path)}
            )

    if hasattr(source, "read"):
        try:
            data = source.read()
        except OSError as e:
            handle_and_reraise(e, ModelIOError, "Cannot read model from stream", error_code="MODEL_READ_FAILED")
        if not isinstance(data, (bytes, bytearray)):
            raise ModelIOError("Model stream must be opened in binary mode", error_code="TEXT_STREAM")
        return bytes(data)

    raise ModelIOError(
        f"Unsupported model source type: {type(source).__name__}",
        error_code="BAD_MODEL_SOURCE"
    )


def write_target(raw: bytes, target: Target) -> None:
    """Write model bytes to a path or a binary writable stream.

    Raises:
        ModelIOError: If the location cannot be written
    """
    if isinstance(target, (str, Path)):
        path = Path(target)
        try:
            path.write_bytes(raw)
        except OSError as e:
            handle_and_reraise(
                e, ModelIOError,
                f"Cannot write model to {path}",
                error_code="MODEL_WRITE_FAILED",
                context={'path': str(path)}
            )
        return

    if hasattr(target, "write"):
        try:
            target.write(raw)
        except (OSError, TypeError) as e:
            handle_and_reraise(e, ModelIOError, "Cannot write model to stream", error_code="MODEL_WRITE_FAILED")
        return

    raise ModelIOError(
        f"Unsupported model target type: {type(target).__name__}",
        error_code="BAD_MODEL_TARGET"
    )
