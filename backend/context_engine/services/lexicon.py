"""
Hand-curated language tables (Vietnamese + English).

These are configuration data, not logic: the scorer, ranker and intent
classifiers accept replacements for every table here so the engine can be
pointed at another language without touching the scoring code.
"""

from typing import Dict, FrozenSet, List, Tuple

from context_engine.models.schemas import SkillLevel

STOP_WORDS: FrozenSet[str] = frozenset({
    # Vietnamese (with and without diacritics)
    "là", "gì", "như", "thế", "nào", "học", "hoc", "muốn", "muon", "tôi", "toi",
    "bạn", "ban", "làm", "lam", "việc", "viec", "cần", "can", "phù", "phu",
    "hợp", "hop", "để", "về", "khóa", "khoa", "lớp", "lop", "có", "trình",
    "trinh", "lập", "lap", "coi", "xem", "cảm", "ơn", "camon", "cho", "của",
    "cua", "và", "với", "voi", "này", "nay", "được", "duoc", "không", "khong",
    "một", "mot", "các", "cac", "những", "nhung", "trong", "bài", "bai", "thì",
    "thi", "hãy", "hay", "giúp", "giup", "mình", "minh", "em", "anh", "chị",
    "đã", "đang", "sẽ", "rồi", "roi", "nữa", "nua", "vậy", "vay", "sao",
    # English
    "the", "is", "are", "was", "were", "what", "how", "why", "when", "where",
    "which", "who", "and", "for", "with", "this", "that", "these", "those",
    "about", "from", "into", "can", "could", "would", "should", "you", "your",
    "does", "did", "have", "has", "had", "please", "tell", "explain", "want",
    "need", "learn", "know", "there", "their", "them", "then", "than", "some",
    "any", "all", "get", "give", "show", "just", "also", "more", "most",
})

# Short technical tokens that survive the 3-character minimum
SHORT_KEYWORDS: FrozenSet[str] = frozenset({
    "ai", "js", "ts", "go", "c++", "c#", "ui", "ux", "db", "ml",
    "qa", "io", "vr", "ar", "os",
})

# Phrase -> level; scanned in order, first match wins
LEVEL_KEYWORDS: List[Tuple[str, SkillLevel]] = [
    # Advanced
    ("nâng cao", SkillLevel.ADVANCED),
    ("nang cao", SkillLevel.ADVANCED),
    ("chuyên sâu", SkillLevel.ADVANCED),
    ("đã có kinh nghiệm", SkillLevel.ADVANCED),
    ("nhiều kinh nghiệm", SkillLevel.ADVANCED),
    ("advanced", SkillLevel.ADVANCED),
    ("already experienced", SkillLevel.ADVANCED),
    ("experienced", SkillLevel.ADVANCED),
    ("expert", SkillLevel.ADVANCED),
    ("senior", SkillLevel.ADVANCED),
    # Intermediate
    ("trung cấp", SkillLevel.INTERMEDIATE),
    ("trung cap", SkillLevel.INTERMEDIATE),
    ("đã biết cơ bản", SkillLevel.INTERMEDIATE),
    ("có nền tảng", SkillLevel.INTERMEDIATE),
    ("intermediate", SkillLevel.INTERMEDIATE),
    ("some experience", SkillLevel.INTERMEDIATE),
    ("know the basics", SkillLevel.INTERMEDIATE),
    # Beginner
    ("mới bắt đầu", SkillLevel.BEGINNER),
    ("moi bat dau", SkillLevel.BEGINNER),
    ("người mới", SkillLevel.BEGINNER),
    ("cơ bản", SkillLevel.BEGINNER),
    ("co ban", SkillLevel.BEGINNER),
    ("từ đầu", SkillLevel.BEGINNER),
    ("chưa biết gì", SkillLevel.BEGINNER),
    ("just starting", SkillLevel.BEGINNER),
    ("beginner", SkillLevel.BEGINNER),
    ("from scratch", SkillLevel.BEGINNER),
    ("newbie", SkillLevel.BEGINNER),
    ("no experience", SkillLevel.BEGINNER),
    ("basics", SkillLevel.BEGINNER),
]

CATEGORY_SYNONYMS: Dict[str, List[str]] = {
    "web": ["frontend", "backend", "fullstack", "html", "css", "javascript", "react", "node"],
    "frontend": ["html", "css", "javascript", "react", "vue", "angular"],
    "backend": ["node", "express", "api", "database", "server"],
    "mobile": ["android", "ios", "flutter", "react native", "kotlin", "swift"],
    "data": ["sql", "database", "analytics", "pandas", "python"],
    "ai": ["machine learning", "deep learning", "python", "llm", "neural"],
    "game": ["unity", "unreal", "godot"],
    "devops": ["docker", "kubernetes", "cloud", "linux"],
    "javascript": ["js", "node", "react"],
    "python": ["django", "flask", "pandas"],
}

FULL_TRANSCRIPT_PATTERNS: List[str] = [
    r"(toàn bộ|full|entire|whole|complete)\s*(nội dung\s*)?(transcript|phụ đề|lời thoại|script)",
    r"(transcript|phụ đề)\s*(đầy đủ|toàn bộ|full)",
    r"(show|give|send|cho)\s*(me|tôi|mình)?\s*(the\s*)?(full\s*)?transcript",
]

LESSON_SUMMARY_PATTERNS: List[str] = [
    r"bài (học )?(này )?(dạy|nói|học|giảng) (về )?(gì|những gì|cái gì)",
    r"(tóm tắt|tổng kết|summary of|summari[sz]e)",
    r"what (did|does) (this|the) (lesson|video|lecture) (teach|cover|explain|talk about)",
    r"what (did|have) (i|we) (just )?learn(ed|t)?",
    r"what is this (lesson|video|lecture) about",
]

UNRELATED_TOPIC_KEYWORDS: List[str] = [
    # Cooking / food
    "nấu ăn", "công thức nấu", "món ăn", "bò kho", "phở", "recipe", "cooking",
    # Weather / news
    "thời tiết", "weather", "tin tức", "news today",
    # Entertainment
    "phim", "ca sĩ", "bóng đá", "movie", "football", "celebrity",
    # Misc
    "xổ số", "lottery", "horoscope", "tử vi",
]
