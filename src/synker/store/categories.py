# src/synker/store/categories.py

"""
Static per-category metadata (display name, color, icon, insight text).

The table is built once at import time; renderers look entries up instead of
switching on the category themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from .models import Category, Task


@dataclass(frozen=True, slots=True)
class CategoryInfo:
    display_name: str
    color_token: str
    icon_token: str
    insights: tuple[str, ...]


CATEGORY_INFO: MappingProxyType[Category, CategoryInfo] = MappingProxyType(
    {
        Category.SPORTS: CategoryInfo(
            display_name="Sports",
            color_token="systemBlue",
            icon_token="figure.run",
            insights=(
                "Regular physical activity improves mental and physical health.",
                "Strength training builds muscle and boosts metabolism.",
                "Cardiovascular exercises like running enhance heart health.",
                "Playing team sports helps develop communication and leadership skills.",
            ),
        ),
        Category.STUDY: CategoryInfo(
            display_name="Study",
            color_token="systemGreen",
            icon_token="books.vertical",
            insights=(
                "Active recall is more effective than passive reading.",
                "Spaced repetition improves long-term retention.",
                "Mind mapping helps visualize and connect complex concepts.",
                "Regular breaks improve focus and prevent burnout.",
            ),
        ),
        Category.WORK: CategoryInfo(
            display_name="Work",
            color_token="systemRed",
            icon_token="latch.2.case",
            insights=(
                "Prioritizing tasks with the Eisenhower Matrix boosts productivity.",
                "Effective time management leads to better work-life balance.",
                "Delegation of tasks reduces stress and increases efficiency.",
                "Regular feedback helps improve skills and professional growth.",
            ),
        ),
        Category.MEETINGS: CategoryInfo(
            display_name="Meetings",
            color_token="systemOrange",
            icon_token="person.line.dotted.person",
            insights=(
                "Setting a clear agenda leads to more productive meetings.",
                "Short, focused meetings prevent wasted time.",
                "Active listening improves communication and collaboration.",
                "Following up with action items ensures tasks are completed.",
            ),
        ),
        Category.HABITS: CategoryInfo(
            display_name="Habits",
            color_token="systemPurple",
            icon_token="arrow.triangle.2.circlepath",
            insights=(
                "Habit stacking helps integrate new routines effortlessly.",
                "Consistency is more important than intensity for habit formation.",
                "Tracking progress increases motivation and commitment.",
                "Breaking bad habits requires replacing them with positive alternatives.",
            ),
        ),
        Category.GYM: CategoryInfo(
            display_name="Gym",
            color_token="systemYellow",
            icon_token="dumbbell",
            insights=(
                "Progressive overload is key to building strength and muscle.",
                "Proper form is more important than lifting heavier weights.",
                "Rest and recovery are essential for muscle growth and injury prevention.",
                "Nutrition plays a crucial role in fitness progress.",
            ),
        ),
        Category.RELAX: CategoryInfo(
            display_name="Relax",
            color_token="systemTeal",
            icon_token="film.fill",
            insights=(
                "Taking breaks with entertainment boosts creativity and reduces stress.",
                "Balance is key: too much screen time can affect productivity and sleep.",
                "Engaging in different forms of entertainment enhances well-being.",
                "Social entertainment, like games or events, strengthens relationships.",
            ),
        ),
        Category.OTHERS: CategoryInfo(
            display_name="Others",
            color_token="systemGray",
            icon_token="square.grid.2x2",
            insights=(
                "Miscellaneous tasks should be grouped for better organization.",
                "Keeping a to-do list helps track small but important tasks.",
                "Time-blocking ensures even unstructured work is completed.",
                "Prioritization prevents low-impact tasks from taking up too much time.",
            ),
        ),
    }
)


def category_info(category: Category) -> CategoryInfo:
    return CATEGORY_INFO[category]


def display_name_for(task: Task) -> str:
    """Category label for a task; "others" tasks show their own label if they have one."""
    if task.category is Category.OTHERS and task.other_category and task.other_category.strip():
        return task.other_category.strip()
    return CATEGORY_INFO[task.category].display_name
