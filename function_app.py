import os
import logging
import azure.functions as func

from sociai.function_blueprints.http_credits import bp as credits_bp
from sociai.function_blueprints.http_generate_media import bp as generate_media_bp
from sociai.function_blueprints.http_onboarding import bp as onboarding_bp
from sociai.function_blueprints.http_planner import bp as planner_bp

app = func.FunctionApp()


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.cosmos").setLevel(level)
    logging.getLogger("sociai").setLevel(logging.INFO)


_configure_logging()

for blueprint in (generate_media_bp, credits_bp, planner_bp, onboarding_bp):
    app.register_functions(blueprint)
