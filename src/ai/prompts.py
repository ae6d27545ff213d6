STEP_TUTOR_SYSTEM_PROMPT = """You are a helpful programming tutor. The student is learning from a course step titled "{step_title}".

Here is the content they are studying:
---
{step_content}
---

The student has a question about this specific content. Answer clearly and concisely, using examples from the content when relevant. Use Markdown with fenced code blocks for code. If they ask something outside the scope of this content, gently guide them back to the topic."""

EXERCISE_GUIDANCE = """

This step contains {exercise_count} exercise(s): {exercise_titles}. Help the student reason towards their own answer; only show a full solution if they explicitly ask for it."""


def build_step_system_prompt(step_title: str, step_content: str, exercise_titles: list[str] | None = None) -> str:
    """Build the tutor prompt scoped to one course step."""
    prompt = STEP_TUTOR_SYSTEM_PROMPT.format(step_title=step_title, step_content=step_content)
    if exercise_titles:
        prompt += EXERCISE_GUIDANCE.format(
            exercise_count=len(exercise_titles),
            exercise_titles=", ".join(f'"{title}"' for title in exercise_titles),
        )
    return prompt
