"""
Eligibility Filter

Narrows the catalog to the patterns usable in the current context.
"""

from typing import List, Optional

from socratic_flow_engine.models import (
    ExpertiseLevel,
    PatternType,
    SelectionConstraints,
    SelectionContext,
    expertise_rank,
)
from socratic_flow_engine.pattern_catalog import PatternCatalog, QuestionPattern


def is_expertise_compatible(pattern_level: ExpertiseLevel, user_level: ExpertiseLevel) -> bool:
    """A user can be asked any pattern at or below their tier."""
    return expertise_rank(user_level) >= expertise_rank(pattern_level)


class EligibilityFilter:
    """
    Applies the eligibility rules. A pattern is eligible only if:
    - the user's tier is at least the pattern's minimum tier
    - the pattern applies to the current context category
    - when a max-depth constraint is active and already reached, the
      pattern's own max depth does not exceed it
    - the pattern is not excluded by the caller
    """

    def __init__(self, catalog: PatternCatalog):
        self.catalog = catalog

    def is_eligible(
        self,
        pattern: QuestionPattern,
        context: SelectionContext,
        constraints: Optional[SelectionConstraints] = None
    ) -> bool:
        if not is_expertise_compatible(pattern.min_expertise, context.user_expertise):
            return False

        if not pattern.applies_to(context.category):
            return False

        if constraints is not None:
            max_depth = constraints.max_depth
            if max_depth is not None and context.current_depth >= max_depth:
                if pattern.max_depth > max_depth:
                    return False

            if pattern.type in constraints.exclude_patterns:
                return False

        return True

    def filter(
        self,
        context: SelectionContext,
        constraints: Optional[SelectionConstraints] = None
    ) -> List[PatternType]:
        """Eligible pattern identifiers in catalog order (may be empty)."""
        return [
            pattern.type
            for pattern in self.catalog.get_all_patterns()
            if self.is_eligible(pattern, context, constraints)
        ]
