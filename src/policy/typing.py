from typing import Literal, TypeAlias

Action: TypeAlias = Literal["accept", "reject"]
