#!/usr/bin/env python3
"""
SentientVision API Server
Upload a photo, run facial emotion analysis on it and browse the result.
Each user intent (upload, analyze, select face, reset) has its own endpoint,
both as JSON under /api and as a form post for the HTML page.
"""

import os
import logging
import uuid
from io import BytesIO
from typing import Any, Dict, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, flash, jsonify, redirect, render_template, request, send_file, session, url_for
from flask_cors import CORS

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from models.emotion import AnalysisResponse, FaceDetection
from models.uploaded_image import UploadedImage
from pipeline.analyze_image import analyze_image
from presentation.annotator import render_annotated
from presentation.view_model import build_view
from services.emotion_analysis_service import EmotionAnalysisService
from services.image_intake_service import ImageIntakeError, ImageIntakeService
from store.intents import FaceSelected, ImageAccepted, ResetRequested
from store.reducer import InvalidTransitionError
from store.result_store import ResultStore
from store.state import AnalysisState, Phase

# Configuration
MAX_UPLOAD_SIZE_MB = float(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))
# Room for the multipart envelope around a file right at the limit
MAX_CONTENT_LENGTH = int(MAX_UPLOAD_SIZE_MB * 1024 * 1024) + 64 * 1024

logger = logging.getLogger(__name__)


def face_to_dict(face: FaceDetection) -> Dict[str, Any]:
    return {
        'box_2d': list(face.box_2d),
        'emotions': [{'label': e.label, 'confidence': e.confidence} for e in face.emotions],
        'summary': face.summary,
        'apparentAge': face.apparent_age,
        'genderEstimate': face.gender_estimate,
    }


def response_to_dict(response: AnalysisResponse) -> Dict[str, Any]:
    return {
        'faces': [face_to_dict(face) for face in response.faces],
        'overallAtmosphere': response.overall_atmosphere,
    }


def serialize_state(state: AnalysisState) -> Dict[str, Any]:
    """Convert an AnalysisState into the JSON body returned by every state endpoint."""
    image = None
    if state.image is not None:
        image = {
            'filename': state.image.filename,
            'mime_type': state.image.mime_type,
            'width': state.image.width,
            'height': state.image.height,
            'size_bytes': state.image.size_bytes,
            'preview': state.image.preview,
        }
    return {
        'phase': state.phase.value,
        'image': image,
        'result': response_to_dict(state.result) if state.result is not None else None,
        'error': state.error,
        'selected_face_index': state.selected_face_index,
    }


def create_app(intake_service: ImageIntakeService = None,
               analysis_service: EmotionAnalysisService = None) -> Flask:
    """Build the Flask app with its own in-memory session registry."""
    app = Flask(__name__)
    CORS(app)  # Enable CORS for a separately hosted frontend

    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    app.config['SECRET_KEY'] = os.getenv("SECRET_KEY", "sentient-vision-dev-key")

    intake_service = intake_service or ImageIntakeService()
    analysis_service = analysis_service or EmotionAnalysisService()

    # Session storage for analysis state
    sessions: Dict[str, ResultStore] = {}
    app.extensions['result_stores'] = sessions

    def get_or_create_session(session_id: Optional[str] = None) -> ResultStore:
        """Get existing session or create new one."""
        if not session_id:
            session_id = str(uuid.uuid4())
        if session_id not in sessions:
            sessions[session_id] = ResultStore(session_id)
        return sessions[session_id]

    def lookup_session(session_id: Optional[str]) -> Optional[ResultStore]:
        return sessions.get(session_id) if session_id else None

    def state_response(store: ResultStore, status: int = 200):
        return jsonify({
            'success': True,
            'session_id': store.session_id,
            'state': serialize_state(store.state),
        }), status

    def read_upload() -> UploadedImage:
        """Validate request.files['image']. Raises ImageIntakeError."""
        if 'image' not in request.files:
            raise ImageIntakeError("No image provided")
        file = request.files['image']
        return intake_service.accept(file.read(), file.filename, file.mimetype)

    def json_payload() -> Dict[str, Any]:
        payload = request.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}

    def json_session_id() -> Optional[str]:
        return json_payload().get('session_id') or request.form.get('session_id')

    # =============================
    # JSON API
    # =============================
    @app.route('/api/upload', methods=['POST'])
    def upload():
        """Accept an image into a (new or existing) session."""
        session_id = request.form.get('session_id')
        try:
            image = read_upload()
        except ImageIntakeError as e:
            return jsonify({'success': False, 'session_id': session_id, 'message': str(e)}), 400
        store = get_or_create_session(session_id)
        store.dispatch(ImageAccepted(image))
        return state_response(store)

    @app.route('/api/analyze', methods=['POST'])
    def analyze():
        """Run emotion analysis on the session image."""
        store = lookup_session(json_session_id())
        if store is None:
            return jsonify({'success': False, 'message': 'Invalid session'}), 404
        try:
            analyze_image(store, analysis_service, intake_service)
        except InvalidTransitionError as e:
            return jsonify({'success': False, 'session_id': store.session_id, 'message': str(e)}), 409
        return state_response(store)

    @app.route('/api/select-face', methods=['POST'])
    def select_face():
        """Change the selected face of a finished analysis."""
        payload = json_payload()
        store = lookup_session(payload.get('session_id'))
        if store is None:
            return jsonify({'success': False, 'message': 'Invalid session'}), 404
        if store.state.phase is not Phase.DONE:
            return jsonify({'success': False, 'session_id': store.session_id,
                            'message': 'No analysis result to select from'}), 409
        try:
            store.dispatch(FaceSelected(payload.get('index')))
        except InvalidTransitionError as e:
            return jsonify({'success': False, 'session_id': store.session_id, 'message': str(e)}), 400
        return state_response(store)

    @app.route('/api/reset', methods=['POST'])
    def reset():
        """Clear image, result, error and selection."""
        store = lookup_session(json_session_id())
        if store is None:
            return jsonify({'success': False, 'message': 'Invalid session'}), 404
        store.dispatch(ResetRequested())
        return state_response(store)

    @app.route('/api/clear-session', methods=['POST'])
    def clear_session():
        """Drop a session and everything it holds."""
        session_id = json_session_id()
        if session_id in sessions:
            del sessions[session_id]
            logger.info(f"Cleared session {session_id}")
            return jsonify({'success': True, 'message': 'Session cleared'})
        return jsonify({'success': False, 'message': 'Session not found'}), 404

    @app.route('/api/state', methods=['GET'])
    def get_state():
        store = lookup_session(request.args.get('session_id'))
        if store is None:
            return jsonify({'success': False, 'message': 'Invalid session'}), 404
        return state_response(store)

    @app.route('/api/annotated-image', methods=['GET'])
    def annotated_image():
        """Serve the session image with face boxes drawn on it."""
        store = lookup_session(request.args.get('session_id'))
        state = store.state if store is not None else None
        if state is None or state.image is None:
            return jsonify({'error': 'Image not found'}), 404
        return send_file(BytesIO(render_annotated(state)), mimetype='image/jpeg')

    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'message': 'SentientVision API is running',
            'active_sessions': len(sessions)
        })

    # =============================
    # HTML page
    # =============================
    # The browser gets a store only once it has uploaded something
    def browser_store() -> Optional[ResultStore]:
        store = lookup_session(session.get('session_id'))
        if store is None:
            session.pop('session_id', None)
        return store

    @app.route('/', methods=['GET'])
    def index():
        store = browser_store()
        state = store.state if store is not None else AnalysisState()
        return render_template('index.html', view=build_view(state),
                               session_id=store.session_id if store is not None else None)

    @app.route('/upload', methods=['POST'])
    def upload_form():
        try:
            image = read_upload()
        except ImageIntakeError as e:
            flash(str(e))
            return redirect(url_for('index'))
        store = get_or_create_session(session.get('session_id'))
        session['session_id'] = store.session_id
        store.dispatch(ImageAccepted(image))
        return redirect(url_for('index'))

    @app.route('/analyze', methods=['POST'])
    def analyze_form():
        store = browser_store()
        if store is None:
            flash("Upload a photo first")
            return redirect(url_for('index'))
        try:
            analyze_image(store, analysis_service, intake_service)
        except InvalidTransitionError as e:
            flash(str(e))
        return redirect(url_for('index'))

    @app.route('/select-face/<int:index>', methods=['POST'])
    def select_face_form(index: int):
        store = browser_store()
        if store is None:
            flash("No analysis result to select from")
            return redirect(url_for('index'))
        try:
            store.dispatch(FaceSelected(index))
        except InvalidTransitionError as e:
            flash(str(e))
        return redirect(url_for('index'))

    @app.route('/reset', methods=['POST'])
    def reset_form():
        """Reset the page and free its session."""
        session_id = session.pop('session_id', None)
        store = sessions.pop(session_id, None) if session_id else None
        if store is not None:
            store.dispatch(ResetRequested())
        return redirect(url_for('index'))

    # =============================
    # Error handlers
    # =============================
    @app.errorhandler(413)
    def too_large(e):
        """Handle file too large error."""
        return jsonify({'success': False, 'message': f'File too large. Maximum size is {MAX_UPLOAD_SIZE_MB:g}MB.'}), 413

    @app.errorhandler(500)
    def internal_error(e):
        """Handle internal server error."""
        logger.error(f"Internal server error: {e}")
        return jsonify({'success': False, 'message': 'Internal server error'}), 500

    return app


def main():
    app = create_app()
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "5000"))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    logger.info("Starting SentientVision API Server...")
    logger.info(f"Max upload size: {MAX_UPLOAD_SIZE_MB:g}MB")
    if not os.getenv("GEMINI_API_KEY"):
        logger.warning("GEMINI_API_KEY is not set; every analysis will fail")

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == '__main__':
    main()
