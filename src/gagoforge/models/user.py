from __future__ import annotations

from dataclasses import dataclass, field

from gagoforge.constants import API_BASE_URL, PROBLEMS_PAGE_SIZE
from gagoforge.models.fields import coerce_bool, coerce_float, coerce_int, coerce_str


@dataclass
class Credentials:
    access: str = ""
    refresh: str = ""

    def is_valid(self) -> bool:
        return bool(self.access)

    @classmethod
    def from_api(cls, data: dict) -> Credentials:
        # Registration nests the pair under "tokens"
        if isinstance(data.get("tokens"), dict):
            data = data["tokens"]
        return cls(
            access=coerce_str(data.get("access")),
            refresh=coerce_str(data.get("refresh")),
        )


@dataclass
class Preferences:
    api_base_url: str = API_BASE_URL
    page_size: int = PROBLEMS_PAGE_SIZE
    editor: str = ""

    def to_dict(self) -> dict:
        return {
            "api_base_url": self.api_base_url,
            "page_size": self.page_size,
            "editor": self.editor,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Preferences:
        return cls(
            api_base_url=data.get("api_base_url") or API_BASE_URL,
            page_size=coerce_int(data.get("page_size"), PROBLEMS_PAGE_SIZE) or PROBLEMS_PAGE_SIZE,
            editor=coerce_str(data.get("editor")),
        )


@dataclass
class UserConfig:
    preferences: Preferences = field(default_factory=Preferences)

    def to_dict(self) -> dict:
        return {"preferences": self.preferences.to_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> UserConfig:
        return cls(preferences=Preferences.from_dict(data.get("preferences", {})))


@dataclass
class User:
    id: int | str | None = None
    username: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username

    @classmethod
    def from_api(cls, data: dict) -> User:
        return cls(
            id=data.get("id"),
            username=coerce_str(data.get("username")),
            email=coerce_str(data.get("email")),
            first_name=coerce_str(data.get("first_name")),
            last_name=coerce_str(data.get("last_name")),
        )


# Fields accepted by PATCH /api/users/profiles/update_preferences/
PROFILE_EDITABLE_FIELDS = (
    "first_name",
    "last_name",
    "preferred_language",
    "theme",
    "email_notifications",
    "bio",
    "github_username",
    "website_url",
)


@dataclass
class Profile:
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    bio: str = ""
    github_username: str = ""
    website_url: str = ""
    preferred_language: str = ""
    theme: str = ""
    email_notifications: bool = False

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username

    def update_payload(self) -> dict:
        """Top-level fields for the preferences endpoint (not nested under "user")."""
        return {name: getattr(self, name) for name in PROFILE_EDITABLE_FIELDS}

    @classmethod
    def from_api(cls, data: dict) -> Profile:
        user = data.get("user") if isinstance(data.get("user"), dict) else {}

        def pick(name: str) -> str:
            return coerce_str(data.get(name) or user.get(name))

        return cls(
            username=pick("username"),
            first_name=pick("first_name"),
            last_name=pick("last_name"),
            email=pick("email"),
            bio=pick("bio"),
            github_username=pick("github_username"),
            website_url=pick("website_url"),
            preferred_language=pick("preferred_language"),
            theme=pick("theme"),
            email_notifications=coerce_bool(data.get("email_notifications", False)),
        )


@dataclass
class LeaderboardEntry:
    rank: int = 0
    username: str = ""
    name: str = ""
    score: float = 0.0
    problems_solved: int = 0
    streak: int = 0
    frameworks: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> LeaderboardEntry:
        frameworks = data.get("frameworks")
        if not isinstance(frameworks, dict):
            frameworks = {}
        return cls(
            rank=coerce_int(data.get("rank")),
            username=coerce_str(data.get("username")),
            name=coerce_str(data.get("name")),
            score=coerce_float(data.get("score", data.get("total_score"))),
            problems_solved=coerce_int(
                data.get("problems_solved", data.get("problemsSolved"))
            ),
            streak=coerce_int(data.get("streak")),
            frameworks={str(k): coerce_int(v) for k, v in frameworks.items()},
        )
