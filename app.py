import logging

from quart import Quart
from quart_schema import QuartSchema, RequestSchemaValidationError, ResponseSchemaValidationError, hide

from common.exception.exception_handler import register_error_handlers
# Import blueprints for different route groups
from routes.routes import routes_bp

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

app = Quart(__name__)

QuartSchema(app,
            info={"title": "Rescue Console API", "version": "0.1.0"},
            tags=[{"name": "Rescue Console", "description": "Admin console for adoptions, pets and reports"}],
            security=[{"bearerAuth": []}],
            security_schemes={
                "bearerAuth": {
                    "type": "http",
                    "scheme": "bearer",
                }
            })

# Register blueprints
app.register_blueprint(routes_bp)


# Register error handlers for custom and generic exceptions
@app.errorhandler(RequestSchemaValidationError)
async def handle_request_validation_error(error):
    return {"error": "VALIDATION_ERROR", "message": str(error.validation_error)}, 400


@app.errorhandler(ResponseSchemaValidationError)
async def handle_response_validation_error(error):
    return {"error": "VALIDATION"}, 500

register_error_handlers(app)


@app.route("/favicon.ico")
@hide
def favicon():
    return "", 200


# Middleware to add CORS headers to every response
@app.after_request
async def apply_cors(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, PUT, DELETE, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "*"
    response.headers["Access-Control-Allow-Credentials"] = "true"
    return response


if __name__ == "__main__":
    app.run(use_reloader=False, debug=True, host="0.0.0.0", port=8000)
