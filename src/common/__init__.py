from common import llm
from common.background import BackgroundRunner
from common.ids import generate_id, now_ms
from common.jsonio import atomic_write_json, encode_json, load_json

__all__ = [
    "llm",
    "BackgroundRunner",
    "generate_id",
    "now_ms",
    "load_json",
    "atomic_write_json",
    "encode_json",
]
