from .resolver import end_of_week, resolve_action_items, resolve_due_hint, utc_today

__all__ = ["end_of_week", "resolve_action_items", "resolve_due_hint", "utc_today"]
