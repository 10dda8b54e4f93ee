from pydantic import BaseModel, ConfigDict, EmailStr, Field

CODE_PATTERN = r"^\d{6}$"


class CodeRequest(BaseModel):
    email: EmailStr

    model_config = ConfigDict(json_schema_extra={"example": {"email": "user@example.com"}})


class CodeVerificationRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., pattern=CODE_PATTERN)

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "user@example.com", "code": "482913"}}
    )


class CodeSentResponse(BaseModel):
    success: bool = True
    message: str
    dev_code: str | None = None


class LoginResponse(BaseModel):
    success: bool = True
    token: str
    email: str


class EntitlementStatus(BaseModel):
    email: str
    has_premium: bool


class EmailVerificationStatus(BaseModel):
    email: str
    verified: bool
