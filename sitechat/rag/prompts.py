# FILE: sitechat/rag/prompts.py
"""
Localized prompt text and canned replies for the chat assistant.
"""

from typing import Dict

DEFAULT_LANGUAGE = "en"

SYSTEM_PROMPTS: Dict[str, str] = {
    "en": (
        "You are the assistant of this website. Answer the user's question using ONLY "
        "the article excerpts provided below.\n"
        "- Do not invent facts, names, dates or numbers that are not in the excerpts.\n"
        "- If the excerpts do not contain the answer, say so plainly.\n"
        "- Keep the answer concise: roughly 100-200 words.\n"
        "- Answer in English."
    ),
    "he": (
        "אתה העוזר של האתר. ענה על שאלת המשתמש אך ורק על סמך קטעי המאמרים המופיעים למטה.\n"
        "- אל תמציא עובדות, שמות, תאריכים או מספרים שאינם מופיעים בקטעים.\n"
        "- אם התשובה אינה מופיעה בקטעים, אמור זאת בפשטות.\n"
        "- שמור על תשובה תמציתית: בערך 100-200 מילים.\n"
        "- ענה בעברית."
    ),
}

NO_INFORMATION: Dict[str, str] = {
    "en": "I'm sorry, I couldn't find any information about that on this site. Try rephrasing your question or browsing the articles directly.",
    "he": "מצטער, לא מצאתי מידע על כך באתר. נסה לנסח את השאלה מחדש או לעיין במאמרים ישירות.",
}

APOLOGY: Dict[str, str] = {
    "en": "I'm sorry, something went wrong while preparing an answer. Please try again in a moment.",
    "he": "מצטער, אירעה שגיאה בהכנת התשובה. אנא נסה שוב בעוד רגע.",
}

CONTEXT_HEADER: Dict[str, str] = {
    "en": "Article excerpts:",
    "he": "קטעי מאמרים:",
}

QUESTION_HEADER: Dict[str, str] = {
    "en": "Question:",
    "he": "שאלה:",
}


def normalize_language(language: str) -> str:
    lang = (language or "").strip().lower()
    return lang if lang in SYSTEM_PROMPTS else DEFAULT_LANGUAGE


def no_information_reply(language: str) -> str:
    return NO_INFORMATION[normalize_language(language)]


def apology_reply(language: str) -> str:
    return APOLOGY[normalize_language(language)]
