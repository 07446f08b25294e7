"""Request bodies accepted by the API.

Each endpoint parses its JSON body into one of these models before any
business logic runs. Wire names are camelCase; attributes are snake_case.
"""
import re
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel

from blogsite.errors import ValidationError
from blogsite.passwords import MIN_PASSWORD_LENGTH

PHONE_RE = re.compile(r'^[+]?[(]?[0-9]{3}[)]?[-\s.]?[0-9]{3}[-\s.]?[0-9]{4,6}$')

Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=30)]
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Content = Annotated[str, StringConstraints(min_length=1, max_length=50000)]
Summary = Annotated[str, StringConstraints(strip_whitespace=True, max_length=200)]
Tag = Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, max_length=20)]
NewPassword = Annotated[str, StringConstraints(min_length=MIN_PASSWORD_LENGTH)]
Status = Literal['draft', 'published', 'archived']
Language = Literal['en', 'es', 'fr', 'de', 'ja']


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class RegisterRequest(RequestModel):
    username: Username
    email: EmailStr
    password: NewPassword

    @field_validator('email')
    @classmethod
    def lower_email(cls, value):
        return value.lower() if value else value


class LoginRequest(RequestModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)]
    password: Annotated[str, StringConstraints(min_length=1)]


class UpdateProfileRequest(RequestModel):
    username: Optional[Username] = None
    email: Optional[EmailStr] = None
    avatar_url: Optional[str] = None
    phone_number: Optional[str] = None

    @field_validator('email')
    @classmethod
    def lower_email(cls, value):
        return value.lower() if value else value

    @field_validator('phone_number')
    @classmethod
    def check_phone(cls, value):
        if value is None:
            return value
        value = value.strip()
        if value and not PHONE_RE.match(value):
            raise ValueError(f'{value} is not a valid phone number!')
        return value


class UpdateSettingsRequest(RequestModel):
    dark_mode: Optional[bool] = None
    email_notifications: Optional[bool] = None
    language: Optional[Language] = None


class ChangePasswordRequest(RequestModel):
    current_password: Annotated[str, StringConstraints(min_length=1)]
    new_password: NewPassword


class BlogCreateRequest(RequestModel):
    title: Title
    content: Content
    tags: List[Tag] = Field(default_factory=list)
    summary: Optional[Summary] = None
    featured_image: str = ''
    status: Status = 'draft'


class BlogUpdateRequest(RequestModel):
    title: Optional[Title] = None
    content: Optional[Content] = None
    tags: Optional[List[Tag]] = None
    summary: Optional[Summary] = None
    featured_image: Optional[str] = None
    status: Optional[Status] = None

    def changes(self):
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class CommentCreateRequest(RequestModel):
    text: str = Field(default='', validate_default=True)

    @field_validator('text')
    @classmethod
    def check_text(cls, value):
        value = (value or '').strip()
        if not value:
            raise ValueError('Comment text is required')
        if len(value) > 500:
            raise ValueError('Comment cannot exceed 500 characters')
        return value


def error_message(exc):
    error = exc.errors()[0]
    field = '.'.join(str(part) for part in error.get('loc', ()))
    reason = error.get('ctx', {}).get('error')
    text = str(reason) if reason else error['msg']
    return f'{field}: {text}' if field else text


def parse(model, data):
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    try:
        return model.model_validate(data)
    except SchemaError as e:
        raise ValidationError(error_message(e)) from e
