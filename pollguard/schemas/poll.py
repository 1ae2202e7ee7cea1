from marshmallow import Schema, fields


class PollInputSchema(Schema):
    """
    Shape check only. Content rules (lengths, option counts) are applied by
    the poll service so every violation is reported together.
    """
    question = fields.Str(load_default=None, allow_none=True)
    options = fields.List(fields.Str(allow_none=True), load_default=None, allow_none=True)


class PollReadSchema(Schema):
    id = fields.UUID()
    user_id = fields.UUID()
    question = fields.Str()
    options = fields.List(fields.Str())
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
