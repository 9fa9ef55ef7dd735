"""
FastAPI Backend for the Socratic Flow Engine

Provides REST API endpoints for:
- Starting and inspecting dialogue sessions
- Selecting the next question pattern
- Recording turn outcomes (feeds effectiveness learning)
- Flow analysis and phase transitions
- Supabase persistence for sessions (in-memory when not configured)
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
import os
import sys
import time
import asyncio
import signal

# Setup enhanced logging with pretty formatting
from lib.logger import setup_logging, get_logger

setup_logging()

logger = get_logger("backend.main")

# Add the socratic_flow_engine package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)

package_src = os.path.join(project_root, 'socratic_flow_engine', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from lib.supabase_client import get_supabase_client, supabase_configured

from socratic_flow_engine.config import EngineConfig
from socratic_flow_engine.engine import DialogueEngine
from socratic_flow_engine.errors import (
    DialogueEngineError,
    ErrorType,
    NoEligiblePatternsError,
    UnknownPatternError,
)
from socratic_flow_engine.models import (
    ContextCategory,
    ExpertiseLevel,
    FlowPhase,
    PatternType,
    ProjectPhase,
    SelectionConstraints,
)
from socratic_flow_engine.session_manager import SessionManager
from socratic_flow_engine.session_state import DialogueSessionState

# Singletons
_engine: Optional[DialogueEngine] = None
_session_manager: Optional[SessionManager] = None
_session_locks: Dict[str, asyncio.Lock] = {}


def get_engine() -> DialogueEngine:
    """Get or create the singleton DialogueEngine."""
    global _engine
    if _engine is None:
        _engine = DialogueEngine(EngineConfig.from_env())
    return _engine


def get_session_manager() -> SessionManager:
    """Get or create the session manager (Supabase when configured)."""
    global _session_manager
    if _session_manager is None:
        client = None
        if supabase_configured():
            try:
                client = get_supabase_client()
            except Exception as e:
                logger.warning("Supabase unavailable, using in-memory sessions", data={"error": str(e)})
        _session_manager = SessionManager(
            supabase_client=client,
            recent_pattern_limit=get_engine().config.recent_pattern_limit,
        )
    return _session_manager


async def lock_existing_session(session_id: str) -> asyncio.Lock:
    """
    Per-session lock serializing turns within a session.

    Locks are only created for stored sessions; unknown ids get a 404
    before anything is added to the lock map.
    """
    lock = _session_locks.get(session_id)
    if lock is None:
        await load_session(session_id)
        lock = _session_locks.setdefault(session_id, asyncio.Lock())
    return lock


app = FastAPI(
    title="Socratic Flow Engine API",
    description="Adaptive question-pattern selection and dialogue flow orchestration",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    logger.request(request.method, request.url.path)
    response = await call_next(request)
    logger.response(response.status_code, request.url.path, duration=time.perf_counter() - started)
    return response


@app.exception_handler(DialogueEngineError)
async def engine_error_handler(request: Request, error: DialogueEngineError):
    if isinstance(error, NoEligiblePatternsError):
        status = 422
    elif error.error_type == ErrorType.NOT_FOUND:
        status = 404
    elif error.error_type == ErrorType.VALIDATION_ERROR:
        status = 422
    elif error.error_type == ErrorType.CONFLICT:
        status = 409
    else:
        status = 500
    logger.warning(f"Engine error on {request.url.path}", data={"type": error.error_type.value, "error": str(error)})
    return JSONResponse(
        status_code=status,
        content={"detail": str(error), "error_type": error.error_type.value, "details": error.details},
    )


# ==================== Pydantic Models ====================

class StartSessionRequest(BaseModel):
    session_id: Optional[str] = None
    category: ContextCategory = ContextCategory.GENERAL
    user_expertise: ExpertiseLevel = ExpertiseLevel.INTERMEDIATE
    project_phase: Optional[ProjectPhase] = None
    current_focus: str = ""
    objectives: List[str] = []


class ObjectiveModel(BaseModel):
    description: str
    completed: bool


class SessionSummary(BaseModel):
    session_id: str
    category: ContextCategory
    user_expertise: ExpertiseLevel
    project_phase: Optional[ProjectPhase]
    current_phase: FlowPhase
    current_depth: int
    turn_count: int
    current_focus: str
    extracted_concepts: List[str]
    detected_assumptions: List[str]
    known_definitions: List[str]
    objectives: List[ObjectiveModel]
    recent_patterns: List[PatternType]
    phase_history: List[FlowPhase]


class SelectRequest(BaseModel):
    exclude_patterns: List[PatternType] = []
    prefer_patterns: List[PatternType] = []
    max_depth: Optional[int] = Field(default=None, ge=0)
    require_fresh: bool = False


class ScoredPatternModel(BaseModel):
    pattern: PatternType
    total_score: float
    factors: Dict[str, float]
    reasoning: List[str]


class SelectionResponse(BaseModel):
    session_id: str
    selected_pattern: PatternType
    template: str
    confidence: float
    alternatives: List[ScoredPatternModel]
    reasoning: List[str]
    suggested_follow_ups: List[PatternType]


class OutcomeRequest(BaseModel):
    pattern: str
    insights: List[str] = []
    user_satisfaction: Optional[float] = None
    follow_up_used: bool = False
    question: str = ""
    response: str = ""
    depth: Optional[int] = Field(default=None, ge=0)
    concepts: List[str] = []
    assumptions: List[str] = []
    definitions: List[str] = []
    led_to_contradiction: bool = False


class OutcomeResponse(BaseModel):
    session_id: str
    pattern: PatternType
    times_used: int
    effectiveness: float
    turn_count: int


class FlowResponse(BaseModel):
    session_id: str
    current_phase: FlowPhase
    phase_confidence: float
    suggested_phase: Optional[FlowPhase]
    transition_confidence: Optional[float]
    turns_in_phase: int
    insights_generated: int
    average_depth: float
    variety_score: float
    effectiveness: float
    overall_progress: float
    readiness_for_transition: float
    completion_likelihood: float
    recommendations: List[str]
    classified_phase: FlowPhase
    classified_confidence: float


class TransitionRequest(BaseModel):
    to_phase: FlowPhase


class TransitionResponse(BaseModel):
    session_id: str
    success: bool
    current_phase: FlowPhase
    warnings: List[str]


class ShouldTransitionResponse(BaseModel):
    session_id: str
    should_transition: bool
    reason: str
    suggested_phase: Optional[FlowPhase] = None


# ==================== Helpers ====================

async def load_session(session_id: str) -> DialogueSessionState:
    session = await get_session_manager().get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def summarize(session: DialogueSessionState) -> SessionSummary:
    return SessionSummary(
        session_id=session.session_id,
        category=session.category,
        user_expertise=session.user_expertise,
        project_phase=session.project_phase,
        current_phase=session.current_phase,
        current_depth=session.current_depth,
        turn_count=session.turn_count,
        current_focus=session.current_focus,
        extracted_concepts=session.extracted_concepts,
        detected_assumptions=session.detected_assumptions,
        known_definitions=session.known_definitions,
        objectives=[
            ObjectiveModel(description=o.description, completed=o.completed)
            for o in session.objectives
        ],
        recent_patterns=session.recent_patterns.patterns(),
        phase_history=session.phase_history,
    )


# ==================== API Endpoints ====================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "Socratic Flow Engine API",
        "version": "1.0.0",
        "patterns": len(get_engine().catalog),
        "supabase_connected": get_session_manager().use_supabase,
    }


@app.get("/api/patterns")
async def list_patterns():
    """List the question patterns in the catalog."""
    return {
        "patterns": [
            {
                "type": pattern.type.value,
                "name": pattern.name,
                "description": pattern.description,
                "template": pattern.template,
                "min_expertise": pattern.min_expertise.value,
                "max_depth": pattern.max_depth,
                "context_categories": sorted(c.value for c in pattern.context_categories),
                "examples": list(pattern.examples),
            }
            for pattern in get_engine().catalog.get_all_patterns()
        ]
    }


@app.post("/api/sessions", response_model=SessionSummary, status_code=201)
async def start_session(request: StartSessionRequest):
    """Start a new dialogue session."""
    manager = get_session_manager()
    if request.session_id and await manager.get_session(request.session_id) is not None:
        raise HTTPException(status_code=409, detail="Session already exists")

    session = get_engine().start_session(
        session_id=request.session_id,
        category=request.category,
        user_expertise=request.user_expertise,
        project_phase=request.project_phase,
        current_focus=request.current_focus,
        objectives=request.objectives,
    )
    await manager.save_session(session)
    return summarize(session)


@app.get("/api/sessions/{session_id}", response_model=SessionSummary)
async def get_session(session_id: str):
    return summarize(await load_session(session_id))


@app.post("/api/sessions/{session_id}/select", response_model=SelectionResponse)
async def select_pattern(session_id: str, request: Optional[SelectRequest] = None):
    """Select the next question pattern for the session."""
    request = request or SelectRequest()
    engine = get_engine()

    async with await lock_existing_session(session_id):
        session = await load_session(session_id)
        result = engine.select(session, SelectionConstraints(
            exclude_patterns=tuple(request.exclude_patterns),
            prefer_patterns=tuple(request.prefer_patterns),
            max_depth=request.max_depth,
            require_fresh=request.require_fresh,
        ))
        await get_session_manager().save_session(session)

    logger.selection(
        session_id,
        result.selected_pattern.value,
        result.confidence,
        [alt.pattern.value for alt in result.alternatives],
    )
    return SelectionResponse(
        session_id=session_id,
        selected_pattern=result.selected_pattern,
        template=engine.catalog.get_pattern(result.selected_pattern).template,
        confidence=result.confidence,
        alternatives=[
            ScoredPatternModel(
                pattern=alt.pattern,
                total_score=alt.total_score,
                factors=alt.factors(),
                reasoning=alt.reasoning,
            )
            for alt in result.alternatives
        ],
        reasoning=result.reasoning,
        suggested_follow_ups=result.suggested_follow_ups,
    )


@app.post("/api/sessions/{session_id}/outcome", response_model=OutcomeResponse)
async def record_outcome(session_id: str, request: OutcomeRequest):
    """Record the outcome of the last question."""
    engine = get_engine()
    try:
        pattern = PatternType(request.pattern)
    except ValueError:
        raise UnknownPatternError(request.pattern)

    async with await lock_existing_session(session_id):
        session = await load_session(session_id)
        context = session.to_selection_context()
        record = engine.record_outcome(
            session,
            pattern,
            insights=request.insights,
            user_satisfaction=request.user_satisfaction,
            follow_up_used=request.follow_up_used,
            question=request.question,
            response=request.response,
            depth=request.depth,
            concepts=request.concepts,
            assumptions=request.assumptions,
            definitions=request.definitions,
            led_to_contradiction=request.led_to_contradiction,
        )
        await get_session_manager().save_session(session)

    effectiveness = engine.learner.get_effectiveness(pattern, context)
    logger.outcome(session_id, pattern.value, session.turn_count, effectiveness)
    return OutcomeResponse(
        session_id=session_id,
        pattern=pattern,
        times_used=record.times_used,
        effectiveness=effectiveness,
        turn_count=session.turn_count,
    )


@app.get("/api/sessions/{session_id}/flow", response_model=FlowResponse)
async def analyze_flow(session_id: str):
    """Full flow analysis plus the quick pattern-history classification."""
    engine = get_engine()
    session = await load_session(session_id)
    analysis = engine.analyze_flow(session)
    snapshot = engine.flow_snapshot(session)
    metrics, progress = analysis.phase_metrics, analysis.progress

    return FlowResponse(
        session_id=session_id,
        current_phase=analysis.current_phase,
        phase_confidence=analysis.phase_confidence,
        suggested_phase=analysis.suggested_phase,
        transition_confidence=analysis.transition_confidence,
        turns_in_phase=metrics.turns_in_phase,
        insights_generated=metrics.insights_generated,
        average_depth=metrics.average_depth,
        variety_score=metrics.variety_score,
        effectiveness=metrics.effectiveness,
        overall_progress=progress.overall_progress,
        readiness_for_transition=progress.readiness_for_transition,
        completion_likelihood=progress.completion_likelihood,
        recommendations=analysis.recommendations,
        classified_phase=snapshot.current_phase,
        classified_confidence=snapshot.phase_confidence,
    )


@app.post("/api/sessions/{session_id}/transition", response_model=TransitionResponse)
async def transition_phase(session_id: str, request: TransitionRequest):
    """Request a phase transition. Rejected moves return success=false."""
    async with await lock_existing_session(session_id):
        session = await load_session(session_id)
        from_phase = session.current_phase
        result = get_engine().transition(session, request.to_phase)
        if result.success:
            await get_session_manager().save_session(session)

    logger.transition(session_id, from_phase.value, request.to_phase.value, result.success, result.warnings)
    return TransitionResponse(
        session_id=session_id,
        success=result.success,
        current_phase=result.new_context.conversation_flow,
        warnings=result.warnings,
    )


@app.get("/api/sessions/{session_id}/should-transition", response_model=ShouldTransitionResponse)
async def should_transition(session_id: str):
    session = await load_session(session_id)
    check = get_engine().should_transition(session)
    return ShouldTransitionResponse(
        session_id=session_id,
        should_transition=check.should_transition,
        reason=check.reason,
        suggested_phase=check.suggested_phase,
    )


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str):
    async with await lock_existing_session(session_id):
        deleted = await get_session_manager().delete_session(session_id)
        _session_locks.pop(session_id, None)

    if not deleted:
        raise HTTPException(status_code=404, detail="Session not found")

    return {"status": "deleted", "session_id": session_id}


@app.on_event("startup")
async def startup_event():
    engine = get_engine()
    logger.section("SOCRATIC FLOW ENGINE STARTED", {
        "patterns": len(engine.catalog),
        "learning_rate": engine.config.learning_rate,
        "allow_back_transitions": engine.config.allow_back_transitions,
        "persistence": "supabase" if get_session_manager().use_supabase else "in-memory",
    })


if __name__ == "__main__":
    import uvicorn

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    try:
        uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
