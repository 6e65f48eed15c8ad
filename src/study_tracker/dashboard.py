"""Cross-course statistics for the dashboard."""
from study_tracker.models import Course
from study_tracker.progress import display_progress


def get_progress_label(progress: float) -> str:
    if progress >= 100:
        return "DONE"
    elif progress >= 70:
        return "ON TRACK"
    elif progress >= 30:
        return "IN PROGRESS"
    return "BEHIND"


def get_progress_color(progress: float) -> str:
    if progress >= 100:
        return "green"
    elif progress >= 70:
        return "cyan"
    elif progress >= 30:
        return "yellow"
    return "red"


def get_completion_rate(courses: list[Course]) -> int:
    if not courses:
        return 0
    return display_progress(sum(c.progress for c in courses) / len(courses))


def get_dashboard_stats(courses: list[Course]) -> dict:
    return {
        "active_courses": len(courses),
        "completion_rate": get_completion_rate(courses),
        "total_hours": round(sum(c.total_hours for c in courses), 2),
        "neglected_courses": sum(1 for c in courses if c.is_neglected),
    }
