from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

class SignupIn(BaseModel):
    # lengths and format are the guard's job so it can report them in order
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", validation_alias=AliasChoices("name", "fullName", "full_name"))
    email: str = ""
    password: str = ""
    confirm_password: str = Field(
        default="", validation_alias=AliasChoices("confirm_password", "confirmPassword")
    )
    role: Literal["student", "teacher"] = "student"

class SignupOut(BaseModel):
    message: str
    user_id: str

class LoginIn(BaseModel):
    email: EmailStr
    password: str

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"

class StrengthIn(BaseModel):
    password: str = Field(default="", max_length=1024)

class StrengthOut(BaseModel):
    score: int
    label: str

class ClientIPOut(BaseModel):
    ip: str

class ErrorOut(BaseModel):
    detail: str
    kind: str
    violations: Optional[List[str]] = None
