"""
Build the single source file sent to the judge from the student's code and the
question's hidden scaffold ("main block").

For the C family the scaffold is split into three parts:

    1. preprocessor lines (#include ...)
    2. declarations: struct/union/enum/class blocks found anywhere at file
       scope, plus globals, forward typedefs and prototypes that come before
       the first function definition
    3. everything else (helpers, entry point)

and recomposed as includes, declarations, student code, rest of scaffold, so the
student's functions can use the scaffold's types and the real `main` sees the
student's functions.

Blocks are found by counting braces line by line. This is not a parser: braces
inside string literals or comments are counted too.
"""
import re
from typing import List, Optional, Tuple

# applied in this order; "&amp;lt;" therefore needs a second pass to become "<"
HTML_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

STRUCTURED_LANGUAGES = {"c", "cpp", "c++"}

_DECLARATION_START = re.compile(r"^\s*(typedef\s+)?(struct|union|enum|class)\b")
_INITIALIZER = re.compile(r"=\s*\{")


def decode_html_entities(text: Optional[str]) -> str:
    if not text:
        return text or ""
    for entity, char in HTML_ENTITIES:
        text = text.replace(entity, char)
    return text


def _brace_delta(line: str) -> int:
    return line.count("{") - line.count("}")


def _opens_declaration(line: str) -> bool:
    # `struct Node* make(int v) {` is a function returning a struct, not a type
    if not _DECLARATION_START.match(line) or "{" not in line:
        return False
    return "(" not in line.split("{", 1)[0]


def _opens_definition(stripped: str) -> bool:
    """A line that begins a function (or template) at file scope."""
    if stripped.startswith(("//", "/*", "*")):
        return False
    if stripped.startswith("template"):
        return True
    if _INITIALIZER.search(stripped):
        return False
    return "{" in stripped or ("(" in stripped and not stripped.endswith(";"))


def split_scaffold(main_block: str) -> Tuple[List[str], List[str], List[str]]:
    """Partition a C-family scaffold into (includes, declarations, rest)."""
    includes: List[str] = []
    declarations: List[str] = []
    rest: List[str] = []

    depth = 0  # brace depth of the code kept in `rest`
    block_depth = 0
    in_declaration = False
    preamble = True  # still before the first function definition

    for line in main_block.split("\n"):
        stripped = line.strip()

        if in_declaration:
            declarations.append(line)
            block_depth += _brace_delta(line)
            if block_depth <= 0:
                in_declaration = False
            continue

        if stripped.startswith("#"):
            includes.append(line)
            continue

        # type blocks are hoisted wherever they sit at file scope
        is_block = _opens_declaration(line) or (preamble and _INITIALIZER.search(stripped) is not None)
        if depth == 0 and is_block:
            declarations.append(line)
            block_depth = _brace_delta(line)
            in_declaration = block_depth > 0
            continue

        # globals, forward typedefs and prototypes ahead of the first function
        if preamble and depth == 0 and not _opens_definition(stripped):
            declarations.append(line)
            continue

        preamble = False
        rest.append(line)
        depth = max(depth + _brace_delta(line), 0)

    return includes, declarations, rest


def compose_source(source: str, main_block: Optional[str], language: Optional[str]) -> str:
    student_code = decode_html_entities(source)
    scaffold = decode_html_entities(main_block)

    if not scaffold or not scaffold.strip():
        return decode_html_entities(student_code)

    if (language or "").strip().lower() in STRUCTURED_LANGUAGES:
        includes, declarations, rest = split_scaffold(scaffold)
        full_code = (
            "\n".join(includes) + "\n\n"
            + "\n".join(declarations) + "\n\n"
            + student_code + "\n\n"
            + "\n".join(rest)
        )
    else:
        full_code = scaffold + "\n\n" + student_code

    # nested escapes such as "&amp;lt;" survive the first pass
    return decode_html_entities(full_code)
