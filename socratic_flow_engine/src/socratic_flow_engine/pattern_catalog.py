"""
Pattern Catalog

Read-only registry of the ten question patterns with their eligibility
metadata and declared follow-ups.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    PatternType,
    expertise_rank,
)


@dataclass(frozen=True)
class FollowUpPattern:
    """A follow-up pattern suggested by a response trigger."""
    trigger_type: str  # "assumption_detected", "vague_answer", "contradiction", "new_concept"
    trigger_pattern: str  # regex over the user's response
    next_pattern: PatternType
    priority: float  # 0-1


@dataclass(frozen=True)
class QuestionPattern:
    """Metadata for one question pattern."""
    type: PatternType
    name: str
    description: str
    template: str
    context_categories: FrozenSet[ContextCategory]
    min_expertise: ExpertiseLevel
    max_depth: int
    follow_ups: Tuple[FollowUpPattern, ...] = ()
    examples: Tuple[str, ...] = ()

    def applies_to(self, category: ContextCategory) -> bool:
        return category in self.context_categories


_C = ContextCategory


class PatternCatalog:
    """
    Registry of question patterns.

    Patterns are registered once at startup and never modified afterwards.
    Iteration order is registration order.
    """

    def __init__(self, load_defaults: bool = True):
        """
        Initialize the catalog.

        Args:
            load_defaults: Register the ten built-in patterns
        """
        self.patterns: Dict[PatternType, QuestionPattern] = {}
        if load_defaults:
            self._initialize_default_patterns()

    def add_pattern(self, pattern: QuestionPattern):
        """Register (or replace) a pattern."""
        self.patterns[pattern.type] = pattern

    def get_pattern(self, pattern_type: PatternType) -> Optional[QuestionPattern]:
        return self.patterns.get(pattern_type)

    def get_all_patterns(self) -> List[QuestionPattern]:
        return list(self.patterns.values())

    def get_patterns_for_context(
        self,
        category: ContextCategory,
        expertise: ExpertiseLevel
    ) -> List[QuestionPattern]:
        """Patterns that apply to the category and that the user's tier can handle."""
        return [
            pattern for pattern in self.patterns.values()
            if pattern.applies_to(category)
            and expertise_rank(expertise) >= expertise_rank(pattern.min_expertise)
        ]

    def __len__(self) -> int:
        return len(self.patterns)

    def __contains__(self, pattern_type) -> bool:
        return pattern_type in self.patterns

    def _initialize_default_patterns(self):
        """Register the ten built-in patterns."""
        self.add_pattern(QuestionPattern(
            type=PatternType.DEFINITION_SEEKING,
            name="Definition Seeking",
            description="Clarifies vague terminology and undefined concepts",
            template="What exactly do you mean by {{concept}}?",
            context_categories=frozenset({
                _C.PROJECT_INCEPTION, _C.REQUIREMENTS_REFINEMENT,
                _C.ARCHITECTURE_REVIEW, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.BEGINNER,
            max_depth=3,
            follow_ups=(
                FollowUpPattern("vague_answer", r"sort of|kind of|basically|generally",
                                PatternType.CONCRETE_INSTANTIATION, 0.8),
            ),
            examples=(
                'What exactly do you mean by "scalable"?',
                'How would you define "user-friendly" in this context?',
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.ASSUMPTION_EXCAVATION,
            name="Assumption Excavation",
            description="Uncovers hidden assumptions and implicit beliefs",
            template="What assumptions are you making about {{area}}?",
            context_categories=frozenset({
                _C.PROJECT_INCEPTION, _C.ARCHITECTURE_REVIEW,
                _C.IMPLEMENTATION_PLANNING, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.BEGINNER,
            max_depth=4,
            follow_ups=(
                FollowUpPattern("assumption_detected", r"assume|obviously|of course|naturally",
                                PatternType.CONSISTENCY_TESTING, 0.85),
            ),
            examples=(
                "What assumptions are you making about user behavior?",
                "Why do you believe the database will handle this load?",
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.CONSISTENCY_TESTING,
            name="Consistency Testing",
            description="Tests for contradictions and logical consistency",
            template="How does {{statement1}} align with {{statement2}}?",
            context_categories=frozenset({
                _C.ARCHITECTURE_REVIEW, _C.REQUIREMENTS_REFINEMENT,
                _C.CODE_REVIEW, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.INTERMEDIATE,
            max_depth=3,
            follow_ups=(
                FollowUpPattern("contradiction", r"but|however|although|despite",
                                PatternType.VALUE_CLARIFICATION, 0.8),
            ),
            examples=(
                "How does requiring high performance align with the tight budget constraint?",
                "What if the security requirement conflicts with usability?",
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.CONCRETE_INSTANTIATION,
            name="Concrete Instantiation",
            description="Transforms abstract concepts into specific examples",
            template="Can you give me a specific example of {{concept}}?",
            context_categories=frozenset({
                _C.REQUIREMENTS_REFINEMENT, _C.PROJECT_INCEPTION,
                _C.IMPLEMENTATION_PLANNING, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.BEGINNER,
            max_depth=2,
            follow_ups=(
                FollowUpPattern("vague_answer", r"depends|varies|different|multiple",
                                PatternType.DEFINITION_SEEKING, 0.7),
            ),
            examples=(
                'Can you give me a specific example of a "responsive" interface?',
                'What would "good performance" look like in practice?',
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.NECESSITY_TESTING,
            name="Necessity Testing",
            description="Questions the necessity of features and complexity",
            template="What would happen if we removed {{component}}?",
            context_categories=frozenset({
                _C.ARCHITECTURE_REVIEW, _C.IMPLEMENTATION_PLANNING,
                _C.CODE_REVIEW, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.INTERMEDIATE,
            max_depth=3,
            follow_ups=(
                FollowUpPattern("new_concept", r"need|require|must have|essential",
                                PatternType.VALUE_CLARIFICATION, 0.75),
            ),
            examples=(
                "What would happen if we removed the caching layer?",
                "Is this microservice truly necessary?",
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.CONCEPTUAL_CLARITY,
            name="Conceptual Clarity",
            description="Clarifies relationships between concepts and ideas",
            template="How is {{concept1}} different from {{concept2}}?",
            context_categories=frozenset({
                _C.ARCHITECTURE_REVIEW, _C.PROJECT_INCEPTION,
                _C.CODE_REVIEW, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.INTERMEDIATE,
            max_depth=2,
            follow_ups=(
                FollowUpPattern("vague_answer", r"similar|same|basically",
                                PatternType.DEFINITION_SEEKING, 0.8),
            ),
            examples=(
                "How is a service different from a microservice?",
                "What distinguishes authentication from authorization?",
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.EPISTEMIC_HUMILITY,
            name="Epistemic Humility",
            description="Acknowledges knowledge boundaries and uncertainties",
            template="What don't we know about {{area}}?",
            context_categories=frozenset({
                _C.PROJECT_INCEPTION, _C.ARCHITECTURE_REVIEW,
                _C.IMPLEMENTATION_PLANNING, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.INTERMEDIATE,
            max_depth=3,
            follow_ups=(
                FollowUpPattern("new_concept", r"unknown|unsure|unclear|uncertain",
                                PatternType.IMPACT_ANALYSIS, 0.8),
            ),
            examples=(
                "What don't we know about user behavior patterns?",
                "Where might our performance assumptions be wrong?",
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.SOLUTION_SPACE_MAPPING,
            name="Solution Space Mapping",
            description="Explores alternative approaches and solutions",
            template="What other approaches could solve {{problem}}?",
            context_categories=frozenset({
                _C.ARCHITECTURE_REVIEW, _C.IMPLEMENTATION_PLANNING,
                _C.PROJECT_INCEPTION, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.INTERMEDIATE,
            max_depth=3,
            follow_ups=(
                FollowUpPattern("new_concept", r"alternative|different|other way",
                                PatternType.IMPACT_ANALYSIS, 0.75),
            ),
            examples=(
                "What other approaches could solve the scaling problem?",
                "What alternatives did you consider for data storage?",
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.IMPACT_ANALYSIS,
            name="Impact Analysis",
            description="Examines consequences and ripple effects",
            template="What are the consequences of {{decision}}?",
            context_categories=frozenset({
                _C.ARCHITECTURE_REVIEW, _C.IMPLEMENTATION_PLANNING,
                _C.PROJECT_INCEPTION, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.INTERMEDIATE,
            max_depth=4,
            follow_ups=(
                FollowUpPattern("new_concept", r"affect|impact|consequence|result",
                                PatternType.VALUE_CLARIFICATION, 0.7),
            ),
            examples=(
                "What are the consequences of choosing microservices?",
                "Who else would be affected by this API change?",
            ),
        ))

        self.add_pattern(QuestionPattern(
            type=PatternType.VALUE_CLARIFICATION,
            name="Value Clarification",
            description="Clarifies priorities, values, and trade-offs",
            template="Why is {{goal}} important?",
            context_categories=frozenset({
                _C.PROJECT_INCEPTION, _C.ARCHITECTURE_REVIEW,
                _C.REQUIREMENTS_REFINEMENT, _C.GENERAL,
            }),
            min_expertise=ExpertiseLevel.BEGINNER,
            max_depth=3,
            follow_ups=(
                FollowUpPattern("new_concept", r"priority|important|valuable|critical",
                                PatternType.NECESSITY_TESTING, 0.7),
            ),
            examples=(
                "Why is performance more important than simplicity here?",
                "What trade-offs are you willing to make for security?",
            ),
        ))
