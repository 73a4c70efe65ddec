import io
import logging
import webbrowser

from flask import Flask, jsonify, render_template_string, request, send_file, session

from sqlpg.completion import CompletionClient, fetch_credential
from sqlpg.config import Settings
from sqlpg.controller import (
    CLEARED,
    LOADING_TEXT,
    REJECTED,
    SUPERSEDED,
    ActionOutcome,
    AssistantController,
)
from sqlpg.session import SessionStore

HTML = '''<!doctype html>
<html><head><title>SQL Server to PostgreSQL Assistant</title>
<meta charset="utf-8"><meta name="viewport" content="width=device-width,initial-scale=1">
<link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/css/bootstrap.min.css" rel="stylesheet">
<style>
body{font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:linear-gradient(135deg,#667eea,#764ba2);min-height:100vh;padding:20px}
.shell{max-width:1400px;margin:0 auto;background:#fff;padding:40px;border-radius:16px;box-shadow:0 25px 70px rgba(0,0,0,0.35)}
.header{text-align:center;margin-bottom:30px}
h1{color:#1e293b;font-size:2.4rem;font-weight:900;margin-bottom:8px}
.subtitle{color:#64748b;font-size:1.1rem;margin-bottom:20px}
.badge-ai{display:inline-block;padding:10px 24px;border-radius:30px;font-size:0.95rem;font-weight:700;color:#fff;background:linear-gradient(135deg,{{ '#10b981,#059669' if ai_ready else '#94a3b8,#64748b' }})}
.upload{text-align:center;padding:30px;border:3px dashed #667eea;border-radius:12px;margin:25px 0;background:linear-gradient(135deg,#f8faff,#f0f4ff)}
input[type="file"]{display:none}
.file-label{padding:14px 36px;background:linear-gradient(135deg,#667eea,#764ba2);color:#fff;border-radius:12px;cursor:pointer;font-weight:700;display:inline-block}
.file-name{margin-top:15px;color:#64748b;font-weight:600}
.panel{background:#f8fafc;padding:20px;border-radius:12px;border:2px solid #e2e8f0;margin:20px 0}
.panel h3{color:#1e293b;margin-bottom:15px;font-size:1.1rem;font-weight:700}
.region{min-height:2rem;overflow-x:auto}
.region pre{background:#1e293b;color:#e2e8f0;padding:14px;border-radius:8px}
.notes{color:#b45309;font-size:0.9rem;margin-top:10px}
.buttons{display:flex;justify-content:center;gap:15px;flex-wrap:wrap;margin-top:10px}
</style></head><body>
<div class="shell">
<div class="header">
<h1>SQL Server to PostgreSQL Assistant</h1>
<p class="subtitle">Overview, ER diagram, conversion and verification of SQL Server scripts</p>
<span class="badge-ai">{{ 'AI ACTIVE - ' + model if ai_ready else 'NO API TOKEN - requests will be rejected' }}</span>
</div>

<div class="upload">
<label for="fileInput" class="file-label">Upload SQL File</label>
<input type="file" id="fileInput" accept=".sql">
<button type="button" class="btn btn-outline-secondary ms-2" id="loadEmployeeDataBtn">Load Sample Employee Data</button>
<div class="file-name" id="fileName">No file selected</div>
</div>

<div class="accordion" id="sqlAccordion"></div>

<div class="panel"><h3>Overview</h3><div class="region" id="overview"></div></div>

<div class="panel"><h3>Entity-Relationship Diagram</h3>
<div class="region" id="diagram"></div><ul class="notes" id="diagramNotes"></ul>
<div class="buttons"><button type="button" class="btn btn-primary" id="generateDiagramBtn">Generate ERD</button></div></div>

<div class="panel"><h3>PostgreSQL Conversion</h3>
<div class="region" id="convertedCode"></div><ul class="notes" id="convertNotes"></ul>
<div class="buttons">
<button type="button" class="btn btn-primary" id="convertBtn">Convert to PostgreSQL</button>
<a class="btn btn-secondary disabled" id="downloadBtn" href="{{ url_for('download_converted') }}">Download</a>
<button type="button" class="btn btn-outline-danger" id="clearBtn">Clear</button>
</div></div>

<div class="panel"><h3>Verification</h3>
<div class="region" id="verificationResult"></div>
<div class="buttons"><button type="button" class="btn btn-primary" id="verifyBtn">Verify Conversion</button></div></div>
</div>

<script src="https://cdn.jsdelivr.net/npm/bootstrap@5.3.3/dist/js/bootstrap.bundle.min.js"></script>
<script type="module">
import mermaid from 'https://cdn.jsdelivr.net/npm/mermaid@10/dist/mermaid.esm.min.mjs';
mermaid.initialize({ startOnLoad: false });

const LOADING = {{ loading|tojson }};
const REGIONS = { overview: 'overview', diagram: 'diagram', convert: 'convertedCode', verify: 'verificationResult' };
const NOTES = { diagram: 'diagramNotes', convert: 'convertNotes' };
const inflight = {};

async function post(action, body) {
    if (inflight[action]) inflight[action].abort();
    const ctrl = inflight[action] = new AbortController();
    try {
        const r = await fetch('/api/' + action, { method: 'POST', body, signal: ctrl.signal });
        return await r.json();
    } catch (e) {
        if (e.name === 'AbortError') return null;
        console.error('Request failed:', action, e);
        return { status: 'failed', html: 'Error communicating with the server.', warnings: [] };
    } finally {
        if (inflight[action] === ctrl) delete inflight[action];
    }
}

function showNotes(action, warnings) {
    if (!NOTES[action]) return;
    const ul = document.getElementById(NOTES[action]);
    ul.replaceChildren(...(warnings || []).map(w => { const li = document.createElement('li'); li.textContent = w; return li; }));
}

async function runAction(action) {
    const region = document.getElementById(REGIONS[action]);
    const previous = region.innerHTML;
    region.innerHTML = LOADING[action];
    const data = await post(action);
    if (!data || data.status === 'superseded') return;
    if (data.alert) {
        region.innerHTML = previous;
        alert(data.alert);
        return;
    }
    region.innerHTML = data.html;
    showNotes(action, data.warnings);
    if (action === 'diagram' && data.status === 'rendered') {
        try {
            await mermaid.run({ nodes: region.querySelectorAll('.mermaid') });
        } catch (e) {
            console.error('Mermaid render failed:', e);
            showNotes('diagram', [...(data.warnings || []), 'Diagram could not be drawn: ' + e.message]);
        }
    }
    if (action === 'convert') {
        document.getElementById('downloadBtn').classList.toggle('disabled', data.status !== 'rendered');
    }
}

function clearResults() {
    for (const id of ['diagram', 'convertedCode', 'verificationResult']) document.getElementById(id).innerHTML = '';
    for (const action in NOTES) showNotes(action, []);
    document.getElementById('downloadBtn').classList.add('disabled');
}

function showScript(data) {
    document.getElementById('sqlAccordion').innerHTML = `
        <div class="accordion-item">
            <h2 class="accordion-header" id="headingOne">
                <button class="accordion-button" type="button" data-bs-toggle="collapse" data-bs-target="#collapseOne" aria-expanded="true" aria-controls="collapseOne">
                    Uploaded SQL Server Code
                </button>
            </h2>
            <div id="collapseOne" class="accordion-collapse collapse show" aria-labelledby="headingOne" data-bs-parent="#sqlAccordion">
                <div class="accordion-body"><pre style="white-space: pre-wrap;">${data.script_html}</pre></div>
            </div>
        </div>`;
    clearResults();
}

async function loadScript(action, body) {
    const data = await post(action, body);
    if (!data || data.status === 'superseded') return;
    if (data.alert) return alert(data.alert);
    showScript(data);
    if (data.follow_up) runAction(data.follow_up);
}

document.getElementById('fileInput').addEventListener('change', (e) => {
    const file = e.target.files[0];
    if (!file) return;
    document.getElementById('fileName').textContent = file.name;
    const form = new FormData();
    form.append('file', file);
    loadScript('upload', form);
});
document.getElementById('loadEmployeeDataBtn').addEventListener('click', () => loadScript('sample'));
document.getElementById('generateDiagramBtn').addEventListener('click', () => runAction('diagram'));
document.getElementById('convertBtn').addEventListener('click', () => runAction('convert'));
document.getElementById('verifyBtn').addEventListener('click', () => runAction('verify'));
document.getElementById('clearBtn').addEventListener('click', async () => {
    if (!confirm('Clear all content?')) return;
    Object.values(inflight).forEach(c => c.abort());
    await post('reset');
    document.getElementById('sqlAccordion').innerHTML = '';
    document.getElementById('overview').innerHTML = '';
    document.getElementById('fileName').textContent = 'No file selected';
    document.getElementById('fileInput').value = '';
    clearResults();
});
</script>
</body></html>'''

STATUS_CODES = {REJECTED: 400, SUPERSEDED: 409}


def create_app(settings=None, completion_client=None):
    settings = settings or Settings.from_env()

    if completion_client is None:
        credential = settings.api_key or fetch_credential(settings.token_url)
        completion_client = CompletionClient(credential, settings)

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    sessions = SessionStore(maxsize=settings.max_sessions, ttl=settings.session_ttl)
    app.extensions["sqlpg_sessions"] = sessions
    app.extensions["sqlpg_client"] = completion_client

    def controller():
        sid = session.get("sid")
        if not sid:
            sid = session["sid"] = SessionStore.new_id()
        return AssistantController(sessions.get(sid), completion_client, settings)

    def reply(outcome):
        return jsonify(outcome.to_dict()), STATUS_CODES.get(outcome.status, 200)

    @app.route("/")
    def index():
        return render_template_string(
            HTML,
            ai_ready=getattr(completion_client, "has_credential", True),
            model=settings.model,
            loading=LOADING_TEXT,
        )

    @app.route("/api/upload", methods=["POST"])
    def upload():
        file = request.files.get("file")
        if file is None:
            return reply(controller().upload("", b""))
        return reply(controller().upload(file.filename, file.read()))

    @app.route("/api/sample", methods=["POST"])
    def sample():
        return reply(controller().load_sample())

    @app.route("/api/overview", methods=["POST"])
    def overview():
        return reply(controller().generate_overview())

    @app.route("/api/diagram", methods=["POST"])
    def diagram():
        return reply(controller().generate_diagram())

    @app.route("/api/convert", methods=["POST"])
    def convert():
        return reply(controller().convert())

    @app.route("/api/verify", methods=["POST"])
    def verify():
        return reply(controller().verify())

    @app.route("/api/converted.sql")
    def download_converted():
        download = controller().converted_download()
        if download is None:
            return jsonify({"alert": "No converted PostgreSQL code to download."}), 404
        name, sql = download
        return send_file(
            io.BytesIO(sql.encode("utf-8")),
            mimetype="text/plain",
            as_attachment=True,
            download_name=name,
        )

    @app.route("/api/reset", methods=["POST"])
    def reset():
        sid = session.pop("sid", None)
        if sid:
            sessions.discard(sid)
        return reply(ActionOutcome("reset", CLEARED))

    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    ai_ready = app.extensions["sqlpg_client"].has_credential
    url = f"http://{settings.host}:{settings.port}"

    print("\n" + "=" * 80)
    print("  SQL SERVER TO POSTGRESQL ASSISTANT".center(80))
    print("=" * 80)
    if ai_ready:
        print("  AI STATUS: ENABLED".center(80))
        print(f"  MODEL: {settings.model} via {settings.base_url}".center(80))
    else:
        print("  AI STATUS: NO API TOKEN".center(80))
        print("  Set LLM_API_KEY or sign in to the token endpoint".center(80))
    print("=" * 80)
    print(f"  Access: {url}".center(80))
    print("=" * 80 + "\n")
    if settings.open_browser:
        webbrowser.open(url)

    app.run(host=settings.host, port=settings.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
