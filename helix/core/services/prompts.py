"""
Prompt text for the completion-backed steps (drafting, schema repair).
"""

from __future__ import annotations

HELIX_SYNTAX_GUIDE = """\
HELIX SYNTAX RULES:
1. 'strand Name { ... }' defines a data entity.
2. 'field name: Type' declares one field. Types: Text, Integer, Decimal, Boolean, Timestamp.
3. 'view Name { ... }' defines a UI screen.
4. 'list: Strand.all()' binds a view to the records of a strand.
5. 'theme: Glassmorphism' is the standard design token.
6. Blocks never nest. '//' starts a comment."""

EXAMPLE_BLUEPRINT = """\
strand Task {
  field title: Text
  field is_completed: Boolean
  field priority: Integer
}

view TaskList {
  list: Task.all()
  theme: Glassmorphism
}"""

RESEARCHER_SYSTEM_PROMPT = """\
You are the Helix Lead Researcher.
Goal: Analyze the requested domain deeply.
Output: A structured Markdown report containing:
- Key Data Entities & Fields
- Critical Features
- Constraints and gotchas
- User Interface trends for this domain.
DO NOT write code. Write a System Analysis Report."""

SCHEMA_REPAIR_SYSTEM_PROMPT = """\
You are a Prisma schema repair assistant.
Your task is to fix syntax errors in Prisma schema files.

CRITICAL RULES:
- Standard Prisma uses ONLY schema.prisma, never prisma.config.ts
- Output ONLY the fixed schema, no explanations or markdown
- Keep the same models and fields, just fix the syntax
- Ensure all types are valid Prisma types (String, Int, Float, Boolean, DateTime)
- Ensure proper formatting with @id, @default, etc.
- Do NOT include any TypeScript/JavaScript code"""


def constitution_section(context: str | None) -> str:
    if not context or not context.strip():
        return ""
    return (
        "=== CONSTITUTION / PROJECT CONTEXT ===\n"
        "The following guidelines MUST be followed when designing the application:\n\n"
        f"{context.strip()}\n\n"
        "=== END CONSTITUTION ===\n\n"
    )


def architect_system_prompt(context: str | None = None) -> str:
    """System prompt that turns an app idea into blueprint source."""
    rules = [
        "- Create appropriate strands for the data models needed",
        "- Create views that make sense for the user's request",
        "- Keep it simple but complete",
        "- Output ONLY valid Helix code, no markdown fences or explanations",
    ]
    if context and context.strip():
        rules.append("- IMPORTANT: Follow ALL guidelines from the CONSTITUTION section above")

    return (
        f"{constitution_section(context)}"
        "You are the Helix Architect.\n"
        "Your task is to convert a natural language app description into a valid Helix blueprint.\n\n"
        f"{HELIX_SYNTAX_GUIDE}\n\n"
        "RULES:\n" + "\n".join(rules) + "\n\n"
        f"Example output:\n{EXAMPLE_BLUEPRINT}\n"
    )


def architect_user_prompt(idea: str) -> str:
    return f"Create a Helix blueprint for: {idea}"


def blueprint_repair_prompt(idea: str, source: str, error: str) -> str:
    """Ask for a corrected blueprint after a parse failure."""
    return (
        "The previous blueprint failed to parse:\n"
        f"ERROR: {error}\n\n"
        f"BLUEPRINT:\n{source}\n\n"
        "Fix the blueprint. Output ONLY valid Helix code.\n\n"
        "ORIGINAL REQUEST:\n"
        f"{architect_user_prompt(idea)}"
    )


def schema_repair_prompt(schema: str, error: str) -> str:
    return (
        "Fix this Prisma schema that has an error:\n\n"
        f"ERROR:\n{error}\n\n"
        f"SCHEMA:\n{schema}\n\n"
        "Output the corrected schema:"
    )
