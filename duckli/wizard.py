"""
First-run setup flow.

The flow is a pure transition function over an immutable SetupState. Each
transition returns the next state plus a list of effects (fetch the model
list, persist, clear, greet, exit). SetupStateMachine owns the collaborators,
performs the effects in order and feeds their results back in as events.
"""

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum

from duckli.config import Config, CredentialStore, Overrides
from duckli.errors import ModelFetchFailed
from duckli.globals import FALLBACK_MODEL, SUGGESTED_MODEL
from duckli.models import ModelCatalog, ModelDescriptor
from duckli.personalities import PersonalityCatalog, PersonalityDefinition

logger = logging.getLogger(__name__)


class SetupStep(Enum):
    AWAITING_CREDENTIAL = "credential"
    AWAITING_MODEL_CHOICE = "model"
    AWAITING_PERSONALITY_CHOICE = "personality"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SetupState:
    step: SetupStep
    credential: str = ""
    model_id: str = ""
    personality_id: str = ""
    from_override: bool = False
    models: tuple[ModelDescriptor, ...] = ()
    # Pre-filled text for the model prompt
    model_text: str = ""
    cursor: int = 0
    busy: bool = False
    fetch_error: str = ""

    def to_config(self) -> Config:
        return Config(
            self.credential, self.model_id, self.personality_id, self.from_override
        )


# <~~EVENTS~~>
@dataclass(frozen=True)
class CredentialSubmitted:
    text: str


@dataclass(frozen=True)
class ModelsFetched:
    models: tuple[ModelDescriptor, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ModelsUnavailable:
    reason: str = ""


@dataclass(frozen=True)
class ModelSubmitted:
    text: str


@dataclass(frozen=True)
class CursorMoved:
    delta: int


@dataclass(frozen=True)
class PersonalityConfirmed:
    pass


@dataclass(frozen=True)
class Cancelled:
    pass


# <~~EFFECTS~~>
@dataclass(frozen=True)
class FetchModels:
    credential: str


@dataclass(frozen=True)
class PersistConfig:
    config: Config


@dataclass(frozen=True)
class ClearConfig:
    pass


@dataclass(frozen=True)
class EmitWelcome:
    personality: PersonalityDefinition


@dataclass(frozen=True)
class Exit:
    code: int = 0


# <~~TRANSITIONS~~>
def _next_step(state: SetupState, personalities: PersonalityCatalog) -> SetupStep:
    config = state.to_config()
    if config.is_complete(personalities):
        return SetupStep.COMPLETE
    return SetupStep(config.first_missing(personalities))


def _advance(state: SetupState, personalities: PersonalityCatalog):
    """Moves to the next unsatisfied step, emitting completion effects if none is left."""
    step = _next_step(state, personalities)
    state = replace(state, step=step, busy=False)
    effects: list = []
    if step is SetupStep.AWAITING_MODEL_CHOICE and not state.model_text:
        state = replace(state, model_text=SUGGESTED_MODEL)
    elif step is SetupStep.COMPLETE:
        # One-off overrides never overwrite the saved defaults
        if not state.from_override:
            effects.append(PersistConfig(state.to_config()))
        effects.append(EmitWelcome(personalities.resolve(state.personality_id)))
    return state, effects


def initial_state(
    overrides: Overrides,
    saved: Config | None,
    personalities: PersonalityCatalog,
):
    """Decides where setup starts. Reconfigure ignores every other source."""
    if overrides.reconfigure:
        return SetupState(step=SetupStep.AWAITING_CREDENTIAL), []

    config = overrides.apply(saved)
    state = SetupState(
        step=SetupStep.AWAITING_CREDENTIAL,
        credential=config.credential,
        model_id=config.model_id,
        personality_id=config.personality_id,
        from_override=config.from_override,
    )
    state, effects = _advance(state, personalities)
    if state.step is SetupStep.AWAITING_MODEL_CHOICE:
        # Credential already known, list what it can reach
        state = replace(state, busy=True)
        effects.append(FetchModels(state.credential))
    logger.debug("Setup starts at %s", state.step.value)
    return state, effects


def transition(state: SetupState, event, personalities: PersonalityCatalog):
    """Returns (next_state, effects). Events that do not apply leave the state unchanged."""
    if isinstance(event, Cancelled):
        return state, [Exit(0)]
    if state.step is SetupStep.COMPLETE:
        return state, []

    if isinstance(event, CredentialSubmitted):
        credential = event.text.strip()
        if state.step is not SetupStep.AWAITING_CREDENTIAL or state.busy or not credential:
            return state, []
        return replace(state, credential=credential, busy=True), [FetchModels(credential)]

    if isinstance(event, ModelsFetched):
        if not state.busy:
            return state, []
        state = replace(state, models=tuple(event.models), fetch_error="")
        if state.step is SetupStep.AWAITING_CREDENTIAL:
            return _advance(state, personalities)
        return replace(state, busy=False), []

    if isinstance(event, ModelsUnavailable):
        if not state.busy:
            return state, []
        state = replace(state, models=(), fetch_error=event.reason)
        if state.step is SetupStep.AWAITING_CREDENTIAL:
            # Skip the model prompt entirely and go with the fallback
            if not state.model_id:
                state = replace(state, model_id=FALLBACK_MODEL)
            return _advance(state, personalities)
        return replace(state, busy=False), []

    if isinstance(event, ModelSubmitted):
        model_id = event.text.strip()
        if state.step is not SetupStep.AWAITING_MODEL_CHOICE or state.busy or not model_id:
            return state, []
        # Any id is accepted, listed or not
        return _advance(replace(state, model_id=model_id), personalities)

    if state.step is not SetupStep.AWAITING_PERSONALITY_CHOICE:
        return state, []

    if isinstance(event, CursorMoved):
        count = len(personalities)
        return replace(state, cursor=(state.cursor + event.delta) % count), []

    if isinstance(event, PersonalityConfirmed):
        chosen = personalities.list()[state.cursor]
        return _advance(replace(state, personality_id=chosen.id), personalities)

    return state, []


class SetupStateMachine:
    """Drives the setup flow and performs its effects."""

    def __init__(
        self,
        overrides: Overrides,
        store: CredentialStore,
        catalog: ModelCatalog,
        personalities: PersonalityCatalog,
    ):
        self.overrides = overrides
        self.store = store
        self.catalog = catalog
        self.personalities = personalities
        self.state: SetupState = SetupState(step=SetupStep.AWAITING_CREDENTIAL)
        self.welcome: PersonalityDefinition | None = None
        self._pending: deque = deque()
        self._started = False

    @property
    def step(self) -> SetupStep:
        return self.state.step

    @property
    def complete(self) -> bool:
        return self.state.step is SetupStep.COMPLETE

    @property
    def config(self) -> Config | None:
        """The resolved config, once setup is complete."""
        return self.state.to_config() if self.complete else None

    def start(self) -> SetupState:
        """Clears or loads the saved config and enters the first step."""
        if self._started:
            return self.state
        self._started = True
        if self.overrides.reconfigure:
            # Cleared before any state is entered
            self._perform([ClearConfig()])
            saved = None
        else:
            saved = self.store.load()
        self.state, effects = initial_state(self.overrides, saved, self.personalities)
        self._perform(effects)
        self._drain()
        return self.state

    def dispatch(self, event) -> SetupState:
        """Feeds one input event through the flow."""
        self._pending.append(event)
        self._drain()
        return self.state

    # Convenience wrappers for the UI layer
    def submit_credential(self, text: str) -> SetupState:
        return self.dispatch(CredentialSubmitted(text))

    def submit_model(self, text: str) -> SetupState:
        return self.dispatch(ModelSubmitted(text))

    def move_up(self) -> SetupState:
        return self.dispatch(CursorMoved(-1))

    def move_down(self) -> SetupState:
        return self.dispatch(CursorMoved(1))

    def confirm(self) -> SetupState:
        return self.dispatch(PersonalityConfirmed())

    def cancel(self) -> SetupState:
        return self.dispatch(Cancelled())

    def _drain(self):
        while self._pending:
            event = self._pending.popleft()
            self.state, effects = transition(self.state, event, self.personalities)
            self._perform(effects)

    def _perform(self, effects: list):
        for effect in effects:
            if isinstance(effect, FetchModels):
                try:
                    models = self.catalog.fetch(effect.credential)
                except ModelFetchFailed as e:
                    self._pending.append(ModelsUnavailable(str(e)))
                else:
                    self._pending.append(ModelsFetched(tuple(models)))
            elif isinstance(effect, PersistConfig):
                self.store.save(effect.config)
            elif isinstance(effect, ClearConfig):
                self.store.clear()
            elif isinstance(effect, EmitWelcome):
                self.welcome = effect.personality
            elif isinstance(effect, Exit):
                raise SystemExit(effect.code)
