"""
Flask web app for extractive Question Answering.
Input: passage (context) + question -> output: answer span with its score.

The page polls /api/state while the model loads and while a request is in
flight; the controller owns the background worker for the app's lifetime.
"""
import atexit
from typing import Optional

from flask import Flask, render_template, request, jsonify

from .config import QAConfig
from .controller import QAController, WorkerFactory
from .errors import InvalidMessageError
from .inference import TransformersPipelineFactory
from .log import get_logger
from .messages import request_from_payload
from .worker import InferenceWorker

logger = get_logger(__name__)


def default_worker_factory(config: QAConfig) -> WorkerFactory:
    def build() -> InferenceWorker:
        return InferenceWorker(TransformersPipelineFactory(config), eager_load=config.eager_load)

    return build


def create_app(
    config: Optional[QAConfig] = None,
    worker_factory: Optional[WorkerFactory] = None,
) -> Flask:
    config = config or QAConfig.from_env()
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = config.max_content_length
    app.config["QA_CONFIG"] = config

    controller = QAController(
        worker_factory or default_worker_factory(config),
        single_flight=config.single_flight,
    )
    controller.mount()
    app.extensions["qa_controller"] = controller
    atexit.register(controller.unmount)
    logger.info("app created model=%s eager_load=%s", config.model, config.eager_load)

    @app.route("/")
    def index():
        return render_template("index.html", state=controller.view())

    @app.route("/api/state")
    def state():
        return jsonify(controller.view())

    @app.route("/healthz")
    def healthz():
        return jsonify({"ready": controller.view()["ready"]})

    @app.route("/api/answer", methods=["POST"])
    def answer():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        try:
            qa_request = request_from_payload(data)
        except InvalidMessageError as e:
            return jsonify({"error": f"Invalid message: {e}"}), 400
        context = qa_request.context.strip()
        question = qa_request.question.strip()
        if not context or not question:
            return jsonify({"error": "Please enter both passage and question."}), 400
        if not controller.submit(question=question, context=context):
            view = controller.view()
            if view["ready"] and view["busy"]:
                message = "A request is already in progress."
            else:
                message = "Model is not ready yet."
            return jsonify({"error": message}), 409
        return jsonify(controller.view()), 202

    return app


def get_controller(app: Flask) -> QAController:
    return app.extensions["qa_controller"]
