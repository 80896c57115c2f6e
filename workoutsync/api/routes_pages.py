"""
Routes de pages de l'application.

Chaque page renvoie un descripteur minimal (nom de page et contexte de session); le rendu de
l'interface est assuré par le client. Les redirections liées à la session sont appliquées en amont
par `SessionGateMiddleware`.
"""

from fastapi import APIRouter

from workoutsync.api.deps import session_dep
from workoutsync.api.schemas import PageResponse
from workoutsync.domain.entities import SessionContext

router = APIRouter(tags=["pages"])

PAGES = ("feed", "workout", "profile", "friends", "login", "register", "profile-setup")


def _page(name: str, session: SessionContext) -> PageResponse:
    return PageResponse(page=name, authenticated=session.is_authenticated, user=session.user)


def _register_page(name: str) -> None:
    def page(session: SessionContext = session_dep) -> PageResponse:
        return _page(name, session)

    page.__name__ = f"page_{name.replace('-', '_')}"
    router.add_api_route(f"/{name}", page, methods=["GET"], response_model=PageResponse)


for _name in PAGES:
    _register_page(_name)
