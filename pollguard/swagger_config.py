def swagger_template(app=None):
    title = "Pollguard API"
    version = "1.0.0"

    if app:
        title = app.config.get("SWAGGER_TITLE", title)
        version = app.config.get("SWAGGER_VERSION", version)

    return {
        "swagger": "2.0",
        "info": {
            "title": title,
            "version": version,
            "description": "Polls, votes and tallies with owner-scoped access control.",
        },
        "securityDefinitions": {
            "BearerAuth": {
                "type": "apiKey",
                "name": "Authorization",
                "in": "header",
                "description": "JWT Authorization header: Bearer <token>"
            }
        },
        "definitions": {
            "ErrorResponse": {
                "type": "object",
                "properties": {
                    "success": {"type": "boolean", "example": False},
                    "error": {
                        "type": "object",
                        "properties": {
                            "code": {"type": "string", "example": "VALIDATION_FAILED"},
                            "message": {"type": "string", "example": "Question cannot be empty."},
                            "details": {"type": "array", "items": {"type": "string"}}
                        }
                    },
                    "request_id": {"type": "string"}
                }
            }
        }
    }
