"""
Fixed competency catalog and program constants.

The catalog is the join key against per-user rank rows: (category name,
skill id, skill name) triples never change at runtime. Display order of
categories and skills follows the tuple order below.
"""

# Program requirements used by the overall progress percentage
REQUIRED_SKILLS = 22
REQUIRED_EXPERIENCES = 24
REQUIRED_APPROVALS = 24

SKILL_CATALOG: tuple[tuple[str, tuple[tuple[int, str], ...]], ...] = (
    (
        "Category 1 – Technical Competence",
        (
            (1, "1.1 Regulations, Codes & Standards"),
            (2, "1.2 Technical & Design Constraints"),
            (3, "1.3 Risk Management for Technical Work"),
            (4, "1.4 Application of Theory"),
            (5, "1.5 Solution Techniques – Results Verification"),
            (6, "1.6 Safety in Design & Technical Work"),
            (7, "1.7 Systems & Their Components"),
            (8, "1.8 Project or Asset Life-Cycle Awareness"),
            (9, "1.9 Quality Assurance"),
            (10, "1.10 Engineering Documentation"),
        ),
    ),
    (
        "Category 2 – Communication",
        (
            (11, "2.1 Oral Communication (English)"),
            (12, "2.2 Written Communication (English)"),
            (13, "2.3 Reading & Comprehension (English)"),
        ),
    ),
    (
        "Category 3 – Project & Financial Management",
        (
            (14, "3.1 Project Management Principles"),
            (15, "3.2 Finances & Budget"),
        ),
    ),
    (
        "Category 4 – Team Effectiveness",
        (
            (16, "4.1 Promote Team Effectiveness & Resolve Conflict"),
        ),
    ),
    (
        "Category 5 – Professional Accountability",
        (
            (17, "5.1 Professional Accountability (Ethics, Liability, Limits)"),
        ),
    ),
    (
        "Category 6 – Social, Economic, Environmental & Sustainability",
        (
            (18, "6.1 Protection of the Public Interest"),
            (19, "6.2 Benefits of Engineering to the Public"),
            (20, "6.3 Role of Regulatory Bodies"),
            (21, "6.4 Application of Sustainability Principles"),
            (22, "6.5 Promotion of Sustainability"),
        ),
    ),
)

_CATEGORY_BY_SKILL_ID: dict[int, str] = {
    skill_id: category_name
    for category_name, skills in SKILL_CATALOG
    for skill_id, _ in skills
}


def category_of(skill_id: int) -> str | None:
    """Catalog category name for a skill id, or None for unknown ids."""
    return _CATEGORY_BY_SKILL_ID.get(skill_id)


def iter_catalog():
    """Yield (category_name, skill_id, skill_name) in display order."""
    for category_name, skills in SKILL_CATALOG:
        for skill_id, skill_name in skills:
            yield category_name, skill_id, skill_name
