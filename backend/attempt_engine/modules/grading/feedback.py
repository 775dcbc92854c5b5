from __future__ import annotations


def should_show_correct_answers(
    setting: str,
    *,
    status: str,
    attempt_number: int,
    max_attempts: int | None,
) -> bool:
    if setting == 'after_submit':
        return status in ('submitted', 'graded')
    if setting == 'after_all_attempts':
        # "All attempts" is undefined without a limit.
        if max_attempts is None:
            return False
        return status == 'graded' and attempt_number >= max_attempts
    return False
