from flask import Flask, session

import api_client
from auth import current_user, probe_identity
from cart import Cart
from cli import register_cli
from config import Config
from routes_api import api
from routes_web import web
from statuses import payment_label, style_for


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    api_client.init_app(app)
    app.before_request(probe_identity)

    @app.context_processor
    def inject_session():
        return {
            "current_user": current_user(),
            "cart_count": len(session.get("cart", [])),
        }

    app.jinja_env.globals["status_style"] = style_for
    app.jinja_env.globals["payment_label"] = payment_label
    app.jinja_env.filters["money"] = lambda v: f"${float(v or 0):.2f}"

    app.register_blueprint(web)
    app.register_blueprint(api)
    register_cli(app)
    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
