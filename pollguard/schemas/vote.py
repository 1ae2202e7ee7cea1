from marshmallow import Schema, fields


class VoteSubmitSchema(Schema):
    # Type and range are checked by the vote service against the poll
    option_index = fields.Raw(required=True, allow_none=True)


class VoteStatusSchema(Schema):
    has_voted = fields.Bool(required=True)
    option_index = fields.Int(allow_none=True)
