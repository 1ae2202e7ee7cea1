from marshmallow import Schema, fields


class RegisterSchema(Schema):
    name = fields.Str(load_default=None, allow_none=True)
    email = fields.Str(load_default=None, allow_none=True)
    password = fields.Str(load_default=None, allow_none=True)


class LoginSchema(Schema):
    """Schema for login request"""
    email = fields.Str(load_default=None, allow_none=True)
    password = fields.Str(load_default=None, allow_none=True)


class SessionSchema(Schema):
    user_id = fields.Str()
    type = fields.Str()
    expires_at = fields.Str()
    location = fields.Str()
