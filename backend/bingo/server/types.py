from pydantic import BaseModel, ConfigDict, Field

_MAX_TERM_LENGTH = 200


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    password: str = Field(min_length=1, max_length=200)


class TermRequest(BaseModel):
    """Body of the operator term endpoints (add, announce, unannounce).

    Whitespace trimming and the empty-after-trim check happen in the term
    registry so HTTP and in-process callers get the same error.
    """

    model_config = ConfigDict(extra="forbid")

    term: str = Field(max_length=_MAX_TERM_LENGTH)
