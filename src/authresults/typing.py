from typing import Literal, TypeAlias

DmarcOutcome: TypeAlias = Literal["pass", "fail", "none", "other"]
