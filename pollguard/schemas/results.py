from marshmallow import Schema, fields


class OptionResultSchema(Schema):
    index = fields.Int(required=True)
    option = fields.Str(required=True)
    votes = fields.Int(required=True)
    percentage = fields.Float(required=True)


class PollTallySchema(Schema):
    poll_id = fields.UUID(required=True)
    counts = fields.List(fields.Int(), required=True)
    total = fields.Int(required=True)
    results = fields.List(fields.Nested(OptionResultSchema), required=True)
