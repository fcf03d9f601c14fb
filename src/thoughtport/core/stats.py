"""Counts and distributions for export summaries."""

from collections import Counter

from .models import Notebook, Task


def percentage(count: int, total: int) -> float:
    """Share of total, rounded to one decimal; 0.0 for an empty total."""
    if not total:
        return 0.0
    return round(count * 100 / total, 1)


def _ranked(counter: Counter) -> list[tuple[str, int]]:
    # Highest count first, first-seen order among ties
    return sorted(counter.items(), key=lambda item: -item[1])


def status_distribution(tasks: list[Task]) -> list[tuple[str, int]]:
    return _ranked(Counter(task.status.value for task in tasks))


def priority_distribution(tasks: list[Task]) -> list[tuple[str, int]]:
    return _ranked(Counter(task.priority.value for task in tasks))


def category_distribution(notebooks: list[Notebook]) -> list[tuple[str, int]]:
    return _ranked(Counter(notebook.category for notebook in notebooks))


def all_tags(notebooks: list[Notebook], tasks: list[Task]) -> list[str]:
    """Every distinct tag across notebooks and tasks, sorted."""
    tags = {tag for notebook in notebooks for tag in notebook.tags}
    tags.update(tag for task in tasks for tag in task.tags)
    return sorted(tags)
