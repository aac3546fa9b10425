from dataclasses import dataclass
from typing import Any

from hybridchat.models import ModelParameters

THINKING_LEVELS = ("minimal", "low", "high")
IMAGE_SIZES = ("1K", "2K", "4K")
ASPECT_RATIOS = ("21:9", "16:9", "4:3", "1:1", "3:4", "9:16", "2:3", "3:2", "4:5", "5:4")

TTS_VOICES = (
    "Wise_Woman",
    "Friendly_Person",
    "Inspirational_Girl",
    "Deep_Voice_Man",
    "Calm_Woman",
    "Casual_Guy",
    "Lively_Girl",
    "Patient_Man",
    "Young_Knight",
    "Determined_Man",
    "Lovely_Girl",
    "Decent_Boy",
    "Imposing_Manner",
    "Elegant_Man",
    "Abbess",
    "Sweet_Girl_2",
    "Exuberant_Girl",
)
TTS_EMOTIONS = ("None", "happy", "sad", "angry", "fearful", "disgusted", "surprised", "neutral")
TTS_LANGUAGES = (
    "auto", "Chinese", "Chinese,Yue", "English", "Arabic", "Russian", "Spanish",
    "French", "Portuguese", "German", "Turkish", "Dutch", "Ukrainian",
    "Vietnamese", "Indonesian", "Japanese", "Italian", "Korean", "Thai",
    "Polish", "Romanian", "Greek", "Czech", "Finnish", "Hindi",
)

DEFAULT_FALLBACK_MODEL = "gemini-3-flash-preview"


@dataclass(frozen=True)
class ModelConfig:
    id: str
    name: str
    description: str
    capabilities: tuple[str, ...] = ()
    is_pro: bool = False
    supports_thinking: bool = False
    allowed_thinking_levels: tuple[str, ...] = ()
    supports_image_options: bool = False
    supports_tts: bool = False
    fallback_model: str = DEFAULT_FALLBACK_MODEL

    def parameter_names(self) -> list[str]:
        names = ["web_search"]
        if self.supports_thinking:
            names.append("thinking_level")
        if self.supports_image_options:
            names.extend(["image_size", "image_only", "aspect_ratio"])
        if self.supports_tts:
            names.extend(
                [
                    "tts_voice",
                    "tts_emotion",
                    "tts_language",
                    "tts_speed",
                    "tts_volume",
                    "tts_pitch",
                    "tts_hd",
                ]
            )
        return names


MODELS: tuple[ModelConfig, ...] = (
    ModelConfig(
        id="gemini-3-flash",
        name="Gemini 3 Flash",
        description="Google's latest efficient multimodal model.",
        capabilities=("Fast", "Vision"),
        supports_thinking=True,
        allowed_thinking_levels=("minimal", "low", "high"),
    ),
    ModelConfig(
        id="gemini-3-pro",
        name="Gemini 3 Pro",
        description="Google's advanced reasoning model.",
        capabilities=("Reasoning", "Complex Tasks"),
        is_pro=True,
        supports_thinking=True,
        allowed_thinking_levels=("low", "high"),
        fallback_model="gemini-3-pro-preview",
    ),
    ModelConfig(
        id="gpt-5.2-instant",
        name="GPT-5.2 Instant",
        description="Latest instant model.",
        capabilities=("Web Search", "Analysis"),
        is_pro=True,
    ),
    ModelConfig(
        id="gpt-5-nano",
        name="GPT-5 Nano",
        description="Lightweight efficient model.",
        capabilities=("Fast", "Lightweight"),
    ),
    ModelConfig(
        id="nano-banana-pro",
        name="Nano Banana Pro",
        description="Advanced multimodal image model.",
        capabilities=("Vision", "Generation"),
        is_pro=True,
        supports_image_options=True,
        fallback_model="gemini-3-pro-image-preview",
    ),
    ModelConfig(
        id="hailuo-speech-02",
        name="Hailuo Speech 02",
        description="High-fidelity text-to-speech model.",
        capabilities=("Audio", "TTS"),
        is_pro=True,
        supports_tts=True,
    ),
)

_MODELS_BY_ID = {m.id: m for m in MODELS}


def get_model(model_id: str | None) -> ModelConfig:
    return _MODELS_BY_ID.get(model_id or "", MODELS[0])


def is_known_model(model_id: str) -> bool:
    return model_id in _MODELS_BY_ID


def build_extra_body(model: ModelConfig, params: ModelParameters) -> dict[str, Any]:
    extra: dict[str, Any] = {}

    if params.web_search:
        extra["web_search"] = True

    if (
        model.supports_thinking
        and params.thinking_level
        and params.thinking_level in model.allowed_thinking_levels
    ):
        extra["thinking_level"] = params.thinking_level

    if model.supports_image_options:
        if params.image_size:
            extra["image_size"] = params.image_size
        if params.image_only:
            extra["image_only"] = True
        if params.aspect_ratio:
            extra["aspect_ratio"] = params.aspect_ratio

    if model.supports_tts:
        if params.tts_language and params.tts_language != "auto":
            extra["language"] = params.tts_language
        if params.tts_emotion and params.tts_emotion != "None":
            extra["emotion"] = params.tts_emotion
        if params.tts_speed is not None:
            extra["speed"] = params.tts_speed
        if params.tts_volume is not None:
            extra["volume"] = params.tts_volume
        if params.tts_pitch is not None:
            extra["pitch"] = params.tts_pitch
        if params.tts_voice:
            extra["voice"] = params.tts_voice
        if params.tts_hd is not None:
            extra["hd"] = params.tts_hd

    return extra
