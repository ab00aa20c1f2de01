"""
Graduating-year <-> study-year mapping.

The academic year starts on July 1. Before July the current calendar year is
the graduating year of final-year students; from July onward every cohort moves
up one year. "Graduated" is many-valued: it covers the last
GRADUATED_YEAR_SPAN graduating years.
"""

from datetime import date
from typing import Iterable, List, Optional

from codetrack.constants import AcademicConstants


def final_year(today: date) -> int:
    """Graduating year of students currently in their fourth year."""
    if today.month >= AcademicConstants.ACADEMIC_YEAR_START_MONTH:
        return today.year + 1
    return today.year


def study_year_label(graduating_year: Optional[int], today: date) -> Optional[str]:
    """Return First/Second/Third/Fourth/Graduated, or None outside the mapping."""
    if not graduating_year:
        return None
    years_to_graduation = graduating_year - final_year(today)
    if 0 <= years_to_graduation <= 3:
        return AcademicConstants.STUDY_YEARS[3 - years_to_graduation]
    if -AcademicConstants.GRADUATED_YEAR_SPAN <= years_to_graduation < 0:
        return AcademicConstants.GRADUATED
    return None


def graduating_years_for(study_year: str, today: date) -> List[int]:
    """Expand a study-year label into the graduating years it covers."""
    fourth = final_year(today)
    if study_year == AcademicConstants.GRADUATED:
        return [fourth - offset for offset in range(1, AcademicConstants.GRADUATED_YEAR_SPAN + 1)]
    if study_year in AcademicConstants.STUDY_YEARS:
        return [fourth + 3 - AcademicConstants.STUDY_YEARS.index(study_year)]
    raise ValueError(f"Unknown study year: {study_year}")


def expand_study_years(study_years: Iterable[str], today: date) -> List[int]:
    """OR-expand several study-year labels into a sorted, de-duplicated year list."""
    years = set()
    for label in study_years:
        years.update(graduating_years_for(label, today))
    return sorted(years, reverse=True)
