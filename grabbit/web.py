"""
Flask web application for Grabbit.

Routes:
    /              → Health check (plain text)
    /api/info      → GET: video title, thumbnail and offered formats (JSON)
    /api/download  → GET: download a chosen format as an attachment
"""

import os
from flask import Flask, request, jsonify, send_file

from grabbit import __app_name__
from grabbit.catalog import fetch_catalog
from grabbit.downloader import cleanup_stale_files, download_media, remove_quietly
from grabbit.errors import BadInput, DownloadFailed, ExtractionFailed, StreamFailure
from config import settings as config

app = Flask(__name__)


@app.after_request
def _allow_cors(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "*"
    response.headers["Access-Control-Expose-Headers"] = "Content-Disposition"
    return response


@app.route("/")
def index():
    return "yt-dlp server running"


@app.route("/api/info")
def info():
    url = request.args.get("url", "")
    if not url:
        return jsonify({"error": "Missing url"}), 400

    try:
        catalog = fetch_catalog(url, settings=config.load_settings())
    except BadInput as e:
        return jsonify({"error": str(e), "kind": e.kind}), 400
    except ExtractionFailed as e:
        return jsonify({
            "error": "Failed to extract video info. Update yt-dlp.",
            "kind": e.kind,
            "details": e.details,
        }), 500

    return jsonify(catalog)


@app.route("/api/download")
def download():
    try:
        result = download_media(
            request.args.get("url", ""),
            request.args.get("itag", ""),
            media_type=request.args.get("type") or "video",
            audio_itag=request.args.get("audio_itag") or None,
            settings=config.load_settings(),
        )
    except BadInput as e:
        return jsonify({"error": str(e), "kind": e.kind}), 400
    except DownloadFailed as e:
        return jsonify({
            "error": "Download failed!",
            "kind": e.kind,
            "details": e.details,
        }), 500

    return _send_and_cleanup(result.path, result.filename, result.mimetype)


def _send_and_cleanup(path: str, filename: str, mimetype: str):
    """Stream ``path`` as an attachment and delete it once the response closes."""
    try:
        response = send_file(
            path,
            mimetype=mimetype,
            as_attachment=True,
            download_name=filename,
            max_age=0,
        )
    except OSError as e:
        remove_quietly(path)
        failure = StreamFailure(f"Could not open {filename}: {e}")
        print(f"  ⚠️  Stream error: {failure}")
        return jsonify({"error": "Download failed!", "kind": failure.kind,
                        "details": str(failure)}), 500

    # send_file hands the file wrapper straight to the server, which skips
    # Response.close and with it the close callbacks.
    response.direct_passthrough = False
    # Runs after the body was fully sent or the client went away.
    response.call_on_close(lambda: remove_quietly(path))
    return response


# ---- Server ----

def run_web():
    settings = config.load_settings()
    os.makedirs(settings["tmp_dir"], exist_ok=True)
    cleanup_stale_files(settings["tmp_dir"], settings["stale_file_hours"])

    port = settings["port"]
    print(f"\n🚀 {__app_name__} running at: http://localhost:{port}\n")
    app.run(host="0.0.0.0", port=port, threaded=True, use_reloader=False)


if __name__ == "__main__":
    run_web()
