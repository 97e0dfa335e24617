# pagepub/rendering/context.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class RenderContext:
    """
    Who is asking, when, and in which language.

    Passed explicitly into every data, condition and interpolation call.
    """
    now: datetime
    language_id: int
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_groups: Tuple[str, ...] = ()
    last_login: Optional[datetime] = None
    page_keyword: Optional[str] = None
    platform: str = "web"
    params: Mapping[str, Any] = field(default_factory=dict)
    globals: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def system_variables(self) -> Dict[str, Any]:
        # Request parameters never shadow system variables
        variables: Dict[str, Any] = dict(self.params)
        variables.update({
            "user_id": self.user_id,
            "user_name": self.user_name or "",
            "user_email": self.user_email or "",
            "user_group": list(self.user_groups),
            "language": self.language_id,
            "last_login": self.last_login.strftime("%Y-%m-%d") if self.last_login else "",
            "current_date": self.now.strftime("%Y-%m-%d"),
            "current_datetime": self.now.strftime("%Y-%m-%d %H:%M"),
            "current_time": self.now.strftime("%H:%M"),
            "page_keyword": self.page_keyword or "",
            "platform": self.platform,
            "params": dict(self.params),
        })
        return variables
