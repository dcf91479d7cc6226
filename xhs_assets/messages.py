from __future__ import annotations

from .config_schema import Language

_MESSAGES: dict[str, dict[str, str]] = {
    "zh": {
        "no_url": "在输入文本中未找到有效链接。",
        "analysis_failed": "解析失败",
        "analysis_failed_hint": "链接解析失败，请检查 API 设置。",
        "demo_note": "您正处于演示模式。请在设置中配置您的真实 Docker API 端点。",
        "author": "作者信息",
        "title": "笔记标题",
        "description": "笔记内容",
        "media": "媒体素材",
        "no_media": "未发现媒体素材。",
        "saved": "已保存",
        "failed": "失败",
        "batch_succeeded": "下载完成",
        "batch_failed": "下载失败",
        "extra_urls_ignored": "输入中包含多个链接，仅使用第一个。",
    },
    "en": {
        "no_url": "No valid URL found in the input text.",
        "analysis_failed": "Analysis Failed",
        "analysis_failed_hint": "Failed to analyze link. Check your API settings.",
        "demo_note": "You are in demo mode. Configure your real Docker API endpoint in the settings.",
        "author": "Author Info",
        "title": "Post Title",
        "description": "Description",
        "media": "Media Assets",
        "no_media": "No media found in this post.",
        "saved": "Saved",
        "failed": "Failed",
        "batch_succeeded": "Download complete",
        "batch_failed": "Download failed",
        "extra_urls_ignored": "Several links found; only the first one is used.",
    },
}


def message(key: str, language: Language = "zh") -> str:
    table = _MESSAGES.get(language) or _MESSAGES["en"]
    return table.get(key) or _MESSAGES["en"].get(key, key)
