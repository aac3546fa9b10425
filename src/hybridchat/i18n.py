from dataclasses import dataclass

LANGUAGES = ("zh-TW", "en")
DEFAULT_LANGUAGE = "zh-TW"


@dataclass(frozen=True)
class FormatLabels:
    thinking: str = "Thinking Process"
    copy: str = "Copy"
    copied: str = "Copied"
    audio_fallback: str = "Audio playback is not supported here."


@dataclass(frozen=True)
class Labels:
    new_chat: str
    context_cleared: str
    error: str
    undo: str
    you: str
    ai: str
    usage_consumed: str
    usage_points: str
    how_can_i_help: str
    suggestions: tuple[str, ...]
    format: FormatLabels


TRANSLATIONS: dict[str, Labels] = {
    "zh-TW": Labels(
        new_chat="新增對話",
        context_cleared="已清除上下文記憶",
        error="連線發生錯誤。",
        undo="復原",
        you="你",
        ai="AI",
        usage_consumed="耗用",
        usage_points="點",
        how_can_i_help="今天有什麼可以幫你的？",
        suggestions=("解釋量子計算", "寫一個 Python 爬蟲", "比較 React 和 Vue", "創作一首關於雨的詩"),
        format=FormatLabels(
            thinking="思考過程",
            copy="複製",
            copied="已複製",
            audio_fallback="此處無法播放音訊。",
        ),
    ),
    "en": Labels(
        new_chat="New Chat",
        context_cleared="Context memory cleared",
        error="Connection error.",
        undo="Undo",
        you="You",
        ai="AI",
        usage_consumed="Used",
        usage_points="points",
        how_can_i_help="How can I help you today?",
        suggestions=(
            "Explain quantum computing",
            "Write a Python script",
            "Compare React vs Vue",
            "Write a poem about rain",
        ),
        format=FormatLabels(),
    ),
}


def normalize_language(language: str | None) -> str:
    return language if language in TRANSLATIONS else DEFAULT_LANGUAGE


def get_labels(language: str | None) -> Labels:
    return TRANSLATIONS[normalize_language(language)]
