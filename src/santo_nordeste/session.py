from __future__ import annotations
import logging
import random
import secrets
import string
from enum import Enum
from typing import Callable, Optional, Protocol, Sequence
from santo_nordeste.models import Mode, Recipe, RecipeDraft, SessionState

logger = logging.getLogger(__name__)

SEARCH_FAILED_MESSAGE = "Eita! Não conseguimos temperar essa receita agora. Tente novamente!"

_ID_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 9

Listener = Callable[[SessionState], None]


class RecipeBackend(Protocol):
    def request_recipe(self, query: str, mode: Mode) -> RecipeDraft: ...

    def request_food_image(self, title: str) -> Optional[str]: ...


class SessionStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"


def _make_id() -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


class RecipeSession:
    """Owns the result list and sequences each search into recipe text, then image."""

    def __init__(self, client: RecipeBackend, suggestions: Sequence[str] = ()):
        self._client = client
        self._suggestions = list(suggestions)
        self._state = SessionState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> SessionState:
        return self._state.model_copy(update={"recipes": list(self._state.recipes)})

    @property
    def status(self) -> SessionStatus:
        if self._state.is_searching:
            return SessionStatus.FETCHING
        if self._state.error:
            return SessionStatus.ERROR
        return SessionStatus.IDLE

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    def set_query(self, text: str) -> None:
        self._update(search_query=text)

    def set_mode(self, mode: Mode) -> None:
        self._update(mode=Mode(mode), search_query="")

    def select_recipe(self, recipe: Optional[Recipe]) -> None:
        if recipe is not None and not any(r.id == recipe.id for r in self._state.recipes):
            raise ValueError(f"Recipe '{recipe.id}' is not in this session.")
        self._update(selected_recipe=recipe)

    def search(self, query: Optional[str] = None) -> Optional[Recipe]:
        current_query = query or self._state.search_query
        if not current_query or not current_query.strip():
            return None

        self._update(is_searching=True, error=None)
        mode = self._state.mode

        try:
            draft = self._client.request_recipe(current_query, mode)
        except Exception:
            logger.exception("Recipe request failed for %r (%s)", current_query, mode.value)
            self._update(is_searching=False, error=SEARCH_FAILED_MESSAGE)
            return None

        try:
            image_url = self._client.request_food_image(draft.title)
        except Exception as e:
            logger.warning("Image request failed for %r: %s", draft.title, e)
            image_url = None

        recipe = Recipe(**draft.model_dump(), id=_make_id(), image_url=image_url or None)
        self._update(
            recipes=[recipe, *self._state.recipes],
            is_searching=False,
            search_query="",
        )
        return recipe

    def seed(self) -> Optional[Recipe]:
        """Search for a random suggested dish when nothing has been fetched yet."""
        if self._state.recipes or not self._suggestions:
            return None
        return self.search(random.choice(self._suggestions))
