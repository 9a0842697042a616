from typing import Dict, List
from urllib.parse import quote

from app.domain.quiz.session import TopicStat

# (mínimo %, mensaje) de mayor a menor
PERFORMANCE_BANDS = [
    (90, "Outstanding! You have mastered this material!"),
    (80, "Excellent work! You have a strong understanding!"),
    (70, "Good job! Keep reviewing to improve further."),
    (60, "Not bad, but there is room for improvement."),
    (0,  "Keep studying! Review the topics and try again."),
]

def pct(part: int, whole: int) -> int:
    return round(100.0 * part / whole) if whole > 0 else 0

def progress_pct(current_index: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(current_index, total) * 100.0 / total

def performance_message(percentage: int) -> str:
    for floor, msg in PERFORMANCE_BANDS:
        if percentage >= floor:
            return msg
    return PERFORMANCE_BANDS[-1][1]

def topic_breakdown(topic_stats: Dict[str, TopicStat]) -> List[dict]:
    return [
        {"topic": t, "correct": s.correct, "total": s.total, "pct": pct(s.correct, s.total)}
        for t, s in topic_stats.items()
    ]

def search_url(topic: str, text: str) -> str:
    """Sugerencia de búsqueda para respuestas incorrectas."""
    return "https://www.google.com/search?q=" + quote(f"{topic} {text}", safe="")

def results_summary(score: int, total_questions: int, topic_stats: Dict[str, TopicStat]) -> dict:
    percentage = pct(score, total_questions)
    return {
        "score": score,
        "total": total_questions,
        "percentage": percentage,
        "message": performance_message(percentage),
        "topics": topic_breakdown(topic_stats),
    }
