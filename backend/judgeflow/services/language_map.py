from typing import Dict, Optional

# Judge0 CE language ids
PYTHON_ID = 71

LANGUAGE_IDS: Dict[str, int] = {
    "python": PYTHON_ID,
    "python3": PYTHON_ID,
    "javascript": 63,
    "node": 63,
    "js": 63,
    "c": 50,
    "cpp": 54,
    "c++": 54,
    "java": 62,
}


def language_to_judge0_id(language: Optional[str]) -> int:
    """Map a language label to its Judge0 id. Unknown or empty labels fall back to Python."""
    if not language:
        return PYTHON_ID
    return LANGUAGE_IDS.get(str(language).strip().lower(), PYTHON_ID)
