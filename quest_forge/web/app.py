"""
Flask web application for Quest Forge - dialog session API
"""

import logging
import threading
from pathlib import Path

from flask import Flask, jsonify, request

from quest_forge.engine import DatasetError, DatasetLoader, DialogSystem
from quest_forge.saves import SaveError, SaveNotFound, SaveStore

logger = logging.getLogger(__name__)

DEFAULT_DATASET = Path(__file__).parent.parent / "data" / "example_dialog.json"


def _issue_response(system: DialogSystem):
    """409 body naming why an operation did nothing"""
    return jsonify({"issue": system.last_issue.name}), 409


def _view_response(system: DialogSystem, view):
    if view is None:
        if system.last_issue is not None:
            return _issue_response(system)
        return jsonify({"view": None, "ended": True})
    return jsonify({"view": view.to_dict(), "ended": False})


def create_app(dataset_path=None, saves_dir=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    app.config["DATASET_PATH"] = Path(dataset_path) if dataset_path else DEFAULT_DATASET
    app.config["SAVES_DIR"] = Path(saves_dir) if saves_dir else Path("saves")

    system = DialogSystem()
    dataset = system.load_dialog_data(DatasetLoader().parse_file(app.config["DATASET_PATH"]))
    saves = SaveStore(app.config["SAVES_DIR"])

    # the engine has no locking of its own
    lock = threading.Lock()

    logger.info("Loaded %d dialogs from %s", len(dataset.nodes), app.config["DATASET_PATH"])

    @app.route("/api/dialogs")
    def list_dialogs():
        """List loaded dialog ids"""
        with lock:
            return jsonify({"dialogs": list(system.dialogs)})

    @app.route("/api/dataset", methods=["POST"])
    def load_dataset():
        """Replace the dialog graph with the posted dataset; world state is kept"""
        data = request.get_json(silent=True)
        if data is None:
            return jsonify({"error": "Expected a JSON dataset"}), 400

        try:
            with lock:
                loaded = system.load_dialog_data(data)
        except DatasetError as e:
            return jsonify({"error": str(e), "path": e.path}), 400

        return jsonify({"success": True, "dialogs": len(loaded.nodes), "warnings": loaded.warnings})

    @app.route("/api/graph")
    def graph():
        """Dialog graph as nodes and edges"""
        nodes = []
        edges = []

        with lock:
            for node_id, node in system.dialogs.items():
                nodes.append(
                    {
                        "data": {
                            "id": node_id,
                            "label": node_id,
                            "speaker": node.speaker,
                            "choices_count": len(node.choices),
                            "is_conditional": node.conditions is not None,
                            "is_terminal": node.is_terminal(),
                        }
                    }
                )

                for i, choice in enumerate(node.choices):
                    if choice.next is None:
                        continue
                    edges.append(
                        {
                            "data": {
                                "id": f"{node_id}->{choice.next}#{i}",
                                "source": node_id,
                                "target": choice.next,
                                "label": choice.text[:30] + "..." if len(choice.text) > 30 else choice.text,
                                "full_text": choice.text,
                                "conditional": choice.conditions is not None,
                            }
                        }
                    )

                if node.auto_next is not None:
                    edges.append(
                        {
                            "data": {
                                "id": f"{node_id}->{node.auto_next}",
                                "source": node_id,
                                "target": node.auto_next,
                                "label": "",
                                "auto": True,
                            }
                        }
                    )

        return jsonify({"graph": {"nodes": nodes, "edges": edges}})

    @app.route("/api/session")
    def current_session():
        """View of the active dialog"""
        with lock:
            view = system.current_view()
            return jsonify({"active": view is not None, "view": view.to_dict() if view else None})

    @app.route("/api/session/start", methods=["POST"])
    def start_session():
        data = request.get_json(silent=True) or {}
        dialog_id = data.get("id")
        if not isinstance(dialog_id, str) or not dialog_id:
            return jsonify({"error": "No dialog id specified"}), 400

        with lock:
            return _view_response(system, system.start_dialog(dialog_id))

    @app.route("/api/session/choice", methods=["POST"])
    def choose():
        data = request.get_json(silent=True) or {}
        index = data.get("index")
        if not isinstance(index, int) or isinstance(index, bool):
            return jsonify({"error": "Choice index must be an integer"}), 400

        with lock:
            return _view_response(system, system.make_choice(index))

    @app.route("/api/session/continue", methods=["POST"])
    def continue_session():
        with lock:
            return _view_response(system, system.continue_dialog())

    @app.route("/api/session/end", methods=["POST"])
    def end_session():
        with lock:
            system.end_dialog()
        return jsonify({"view": None, "ended": True})

    @app.route("/api/state", methods=["GET"])
    def get_state():
        with lock:
            return jsonify({"state": system.export_state()})

    @app.route("/api/state", methods=["PUT"])
    def put_state():
        """Replace world state with the posted snapshot"""
        snapshot = request.get_json(silent=True)
        with lock:
            if not system.import_state(snapshot):
                return jsonify({"error": "Invalid state snapshot", "issue": system.last_issue.name}), 400
            return jsonify({"state": system.export_state()})

    @app.route("/api/saves", methods=["GET"])
    def list_saves():
        return jsonify(
            {"saves": [{"name": s.name, "timestamp": s.timestamp, "node": s.node} for s in saves.list_saves()]}
        )

    @app.route("/api/saves", methods=["POST"])
    def create_save():
        """Save world state and the active dialog id"""
        data = request.get_json(silent=True) or {}
        try:
            with lock:
                slot = saves.save(data.get("name", ""), system.export_state(), system.current_dialog)
        except SaveError as e:
            return jsonify({"error": str(e)}), 400

        return jsonify({"success": True, "save": slot.to_dict()})

    @app.route("/api/saves/<name>/load", methods=["POST"])
    def load_save(name):
        """Restore a save slot and resume its dialog"""
        try:
            slot = saves.load(name)
        except SaveNotFound as e:
            return jsonify({"error": str(e)}), 404
        except SaveError as e:
            return jsonify({"error": str(e)}), 400

        with lock:
            if not system.import_state(slot.state):
                return jsonify({"error": "Invalid state snapshot", "issue": system.last_issue.name}), 400

            view = None
            issue = None
            if slot.node:
                view = system.resume_dialog(slot.node)
                if view is None:
                    issue = system.last_issue.name
            if view is None:
                system.end_dialog()

            return jsonify(
                {"state": system.export_state(), "view": view.to_dict() if view else None, "issue": issue}
            )

    return app


def main():
    """Run the development server"""
    import argparse

    parser = argparse.ArgumentParser(description="Quest Forge dialog session server")
    parser.add_argument("--dataset", "-d", help="Path to a JSON dialogue dataset", default=None)
    parser.add_argument("--saves", "-s", help="Directory for save files", default=None)
    parser.add_argument("--port", "-p", help="Port to run on", type=int, default=5000)
    parser.add_argument("--debug", help="Run in debug mode", action="store_true")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    try:
        app = create_app(dataset_path=args.dataset, saves_dir=args.saves)
    except DatasetError as e:
        print(f"❌ Cannot load dataset: {e}")
        raise SystemExit(1)

    print(f"\n{'=' * 60}")
    print("🎭 Quest Forge Session Server")
    print(f"{'=' * 60}")
    print(f"\n📂 Dataset: {app.config['DATASET_PATH']}")
    print(f"💾 Saves directory: {app.config['SAVES_DIR']}")
    print(f"🌐 Server running at: http://localhost:{args.port}")
    print("\nPress Ctrl+C to stop\n")

    app.run(host="127.0.0.1", port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
