import logging
import mimetypes

from flask import Flask, render_template_string, request, send_file
from flask_sock import Sock

from livedocs.config import STATIC_DIR, Settings
from livedocs.exceptions import ForbiddenPath, NotFound
from livedocs.livereload import ViewerRegistry, ViewerSession
from livedocs.paths import parent_href, resolve_request
from livedocs.render import classify, render_directory, render_document

logger = logging.getLogger(__name__)

LIVERELOAD_PATH = "/__livereload"


def create_app(settings: Settings, viewers: ViewerRegistry | None = None) -> Flask:
    app = Flask(__name__, static_folder=str(STATIC_DIR), static_url_path="/static")
    app.config["DOCS_ROOT"] = settings.root
    app.config["SOCK_SERVER_OPTIONS"] = {"ping_interval": settings.ping_interval}
    if viewers is None:
        viewers = ViewerRegistry()
    app.extensions["livedocs.viewers"] = viewers
    sock = Sock(app)

    @app.errorhandler(ForbiddenPath)
    def forbidden(e):
        logger.info("Forbidden: %s", e)
        return "Forbidden", 403

    @app.errorhandler(NotFound)
    def not_found(e):
        return "Not Found", 404

    @sock.route(LIVERELOAD_PATH)
    def livereload(ws):
        session = ViewerSession(ws, request.args.get("view", ""), outbox_size=settings.outbox_size)
        viewers.add(session)
        try:
            session.pump()
        finally:
            viewers.remove(session)

    @app.route("/", defaults={"req_path": ""})
    @app.route("/<path:req_path>")
    def serve_path(req_path):
        root = settings.root
        target = resolve_request(root, req_path)
        # the target can vanish or lose permissions after it was resolved
        try:
            if target.is_dir:
                page = render_directory(root, target.path)
            elif classify(target.path) == "image":
                mime, _ = mimetypes.guess_type(str(target.path))
                return send_file(target.path, mimetype=mime)
            else:
                page = render_document(root, target.path)
        except FileNotFoundError as e:
            raise NotFound(req_path) from e
        except PermissionError as e:
            raise ForbiddenPath(req_path) from e
        return render_template_string(
            PAGE_TEMPLATE,
            page=page,
            back_href=parent_href(page.view_id),
            livereload_path=LIVERELOAD_PATH,
        )

    return app


PAGE_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{{ page.title }}</title>
<link rel="stylesheet" href="/static/livedocs.css">
<script src="https://cdn.jsdelivr.net/npm/mermaid/dist/mermaid.min.js"></script>
</head>
<body>
{% if back_href %}
<a href="{{ back_href }}" class="back-button" title="Up">&larr;</a>
{% endif %}
<div id="content">{{ page.html|safe }}</div>
<script>
if (window.mermaid) {
  mermaid.initialize({ startOnLoad: false, theme: 'dark' });
  document.addEventListener('DOMContentLoaded', () => {
    document.querySelectorAll('code.language-mermaid').forEach(block => {
      const div = document.createElement('div');
      div.className = 'mermaid';
      div.textContent = block.textContent;
      block.parentElement.replaceWith(div);
    });
    mermaid.run();
  });
}

const currentViewPath = {{ page.view_id|tojson }};

(function connect() {
  const protocol = location.protocol === 'https:' ? 'wss:' : 'ws:';
  const url = protocol + '//' + location.host + {{ livereload_path|tojson }}
    + '?view=' + encodeURIComponent(currentViewPath);
  const socket = new WebSocket(url);
  socket.onmessage = (ev) => {
    const data = JSON.parse(ev.data);
    if (data.type !== 'update') return;
    console.log('Reloading after', data.event, data.path);
    window.location.reload();
  };
  socket.onopen = () => console.log('Connected to live reload');
  socket.onclose = () => console.log('Disconnected from live reload');
})();
</script>
</body>
</html>
"""
