"""
Exam Catalog for CLEP Finder

Single authoritative, ordered list of CLEP exam names.
Every component that iterates exams uses this order, so policy lists
and derived output are stable across loads.
"""

from typing import Dict, Optional, Tuple


# All 38 CLEP exams in alphabetical order
EXAM_CATALOG: Tuple[str, ...] = (
    "American Government",
    "American Literature",
    "Analyzing and Interpreting Literature",
    "Biology",
    "Calculus",
    "Chemistry",
    "College Algebra",
    "College Composition",
    "College Composition Modular",
    "College Mathematics",
    "English Literature",
    "Financial Accounting",
    "French Language Level I",
    "French Language Level II",
    "German Language Level I",
    "German Language Level II",
    "History of the United States I",
    "History of the United States II",
    "Human Growth and Development",
    "Humanities",
    "Information Systems",
    "Introduction to Educational Psychology",
    "Introductory Business Law",
    "Introductory Psychology",
    "Introductory Sociology",
    "Natural Sciences",
    "Precalculus",
    "Principles of Macroeconomics",
    "Principles of Management",
    "Principles of Marketing",
    "Principles of Microeconomics",
    "Social Sciences and History",
    "Spanish Language Level I",
    "Spanish Language Level II",
    "Spanish With Writing Level I",
    "Spanish With Writing Level II",
    "Western Civilization I",
    "Western Civilization II",
)

_EXAMS_BY_KEY: Dict[str, str] = {name.casefold(): name for name in EXAM_CATALOG}


# US state names to postal abbreviations
US_STATES: Dict[str, str] = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "florida": "FL", "georgia": "GA", "hawaii": "HI", "idaho": "ID",
    "illinois": "IL", "indiana": "IN", "iowa": "IA", "kansas": "KS",
    "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV",
    "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM", "new york": "NY",
    "north carolina": "NC", "north dakota": "ND", "ohio": "OH", "oklahoma": "OK",
    "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT",
    "vermont": "VT", "virginia": "VA", "washington": "WA", "west virginia": "WV",
    "wisconsin": "WI", "wyoming": "WY",
}


def resolve_exam_name(name: Optional[str]) -> Optional[str]:
    """
    Map a user- or model-supplied exam name onto its catalog spelling.

    Matching ignores case and surrounding whitespace.

    Returns:
        The canonical catalog name, or None if the exam is unknown
    """
    if not name or not isinstance(name, str):
        return None
    return _EXAMS_BY_KEY.get(name.strip().casefold())


def is_catalog_exam(name: Optional[str]) -> bool:
    """Check whether a name resolves to a catalog exam."""
    return resolve_exam_name(name) is not None
