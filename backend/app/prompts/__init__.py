from pathlib import Path


PROMPT_DIR = Path(__file__).parent

PROMPT_FILES = {
    "system": "system.md",
    "analyze_job": "analyze_job.md",
    "tailor_resume": "tailor_resume.md",
    "cover_letter": "cover_letter.md",
    "interview_tips": "interview_tips.md",
}


def load_prompt(name: str) -> str:
    """Load a prompt template by name."""
    if name not in PROMPT_FILES:
        raise ValueError(f"Invalid prompt: {name}. Must be one of {list(PROMPT_FILES.keys())}")

    prompt_path = PROMPT_DIR / PROMPT_FILES[name]
    return prompt_path.read_text(encoding="utf-8").strip()


def render_prompt(name: str, **fields: str) -> str:
    """Fill a prompt template's {placeholders} with the given fields."""
    return load_prompt(name).format(**fields)
