from jarkeeper.kernel.errors import UnknownKindError
from jarkeeper.kinds.base import ServerKind
from jarkeeper.kinds.paper import PaperKind


class KindFactory:
    _kinds: dict[str, ServerKind] = {}

    @classmethod
    def register(cls, kind: ServerKind) -> ServerKind:
        cls._kinds[kind.name] = kind
        return kind

    @classmethod
    def create(cls, name: str) -> ServerKind:
        kind = cls._kinds.get(name.strip().lower())
        if kind is None:
            raise UnknownKindError(name)
        return kind

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._kinds)


KindFactory.register(PaperKind())

DEFAULT_KIND = "paper"


def get_kind(name: str) -> ServerKind:
    return KindFactory.create(name)
