# Embedded single-page diagnostic console, served at "/" and as the non-API 404 fallback.
from config import APP_VERSION, SERVICE_NAME

PAGE_HTML = """<!doctype html>
<html lang="en"><head>
<meta charset="utf-8"/><meta name="viewport" content="width=device-width, initial-scale=1"/>
<title>__SERVICE__ · Diagnostics</title>
<style>
:root { --bd:#223040; --fg:#e6eef7; --muted:#9fb3c8; --ok:#28c76f; --err:#ff5c5c; --bg:#0b0f14; --panel:#0e1520; }
* { box-sizing:border-box }
body { margin:0; font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial; background: var(--bg); color: var(--fg); }
.container { max-width:1100px; margin:20px auto; padding:0 16px; }
.grid { display:grid; grid-template-columns: repeat(auto-fit, minmax(320px, 1fr)); gap:14px; }
.card { border:1px solid var(--bd); border-radius:14px; padding:14px; background: var(--panel); }
.row { display:flex; gap:8px; align-items:center; flex-wrap:wrap; margin:6px 0; }
.small { font-size:12px; color:var(--muted); }
h1 { margin:8px 0 6px; font-size:22px; }
h3 { margin:0 0 8px; font-size:16px; }
input, select { background:#0e1722; color:var(--fg); border:1px solid var(--bd); border-radius:10px; padding:8px 10px; min-width:220px; }
.btn { border:1px solid var(--bd); background:#0e1722; color:var(--fg); padding:8px 12px; border-radius:10px; cursor:pointer; }
.btn.ok { border-color:var(--ok); } .btn.err { border-color:var(--err); }
pre { margin:8px 0 0; white-space:pre-wrap; word-break:break-word; font-size:12px; max-height:360px; overflow:auto; }
</style>
<script>
function flashIcon(btn, ok){ if(!btn) return; const cls = ok ? 'ok' : 'err'; btn.classList.add(cls); setTimeout(()=>btn.classList.remove(cls), 1000); }
async function fetchJSON(url, opts){ const r = await fetch(url, opts); return {status: r.status, body: await r.json()}; }
function show(id, res){ document.getElementById(id).textContent = 'HTTP ' + res.status + '\\n' + JSON.stringify(res.body, null, 2); }
async function runCheck(btn, path, out){
  try { const res = await fetchJSON(path); show(out, res); flashIcon(btn, res.status < 400); }
  catch(e){ document.getElementById(out).textContent = String(e); flashIcon(btn, false); }
}
function val(id){ return (document.getElementById(id).value || '').trim(); }
async function sendTrack(btn){
  const body = {
    pixelId: val('pixel_id'), accessToken: val('access_token'), testEventCode: val('test_event_code'),
    event: val('event'), url: val('url') || window.location.href, email: val('email'), phone: val('phone'),
    value: val('value'), currency: val('currency'), ttclid: val('ttclid'), ttp: val('ttp'),
    browser: { userAgent: navigator.userAgent, language: navigator.language, referrer: document.referrer, url: window.location.href }
  };
  for (const k of Object.keys(body)) { if (body[k] === '') delete body[k]; }
  try {
    const res = await fetchJSON('/test-track-tiktok', {method:'POST', headers:{'Content-Type':'application/json'}, body: JSON.stringify(body)});
    show('out_track', res); flashIcon(btn, res.status === 200 && res.body.success);
  } catch(e){ document.getElementById('out_track').textContent = String(e); flashIcon(btn, false); }
}
</script>
</head><body><div class="container">
<h1>__SERVICE__</h1>
<div class="small">v__APP_VERSION__ · outbound reachability and TikTok Events API test relay</div>
<div class="grid" style="margin-top:14px">
  <div class="card">
    <h3>Reachability</h3>
    <div class="row">
      <button class="btn" onclick="runCheck(this, '/ip-check', 'out_checks')">IP check</button>
      <button class="btn" onclick="runCheck(this, '/tiktok-business-test', 'out_checks')">Business API</button>
      <button class="btn" onclick="runCheck(this, '/tiktok-events-test', 'out_checks')">Events API</button>
      <button class="btn" onclick="runCheck(this, '/api', 'out_checks')">Status</button>
    </div>
    <pre id="out_checks" class="small">Run a check.</pre>
  </div>
  <div class="card">
    <h3>Send test event</h3>
    <div class="row"><input id="pixel_id" placeholder="Pixel ID"/><input id="access_token" type="password" placeholder="Access token"/></div>
    <div class="row"><input id="test_event_code" placeholder="Test event code (recommended)"/>
      <select id="event">__EVENT_OPTIONS__</select></div>
    <div class="row"><input id="email" placeholder="email (hashed server-side)"/><input id="phone" placeholder="phone (hashed server-side)"/></div>
    <div class="row"><input id="value" placeholder="value"/><input id="currency" placeholder="currency, e.g. USD"/></div>
    <div class="row"><input id="ttclid" placeholder="ttclid"/><input id="ttp" placeholder="ttp cookie"/></div>
    <div class="row"><input id="url" placeholder="page url (defaults to this page)"/>
      <button class="btn" onclick="sendTrack(this)">Send</button></div>
    <pre id="out_track" class="small"></pre>
  </div>
</div>
</div></body></html>
"""


def render_console(event_types) -> str:
    options = "".join(f'<option value="{name}">{name}</option>' for name in event_types)
    return (
        PAGE_HTML
            .replace("__SERVICE__", SERVICE_NAME)
            .replace("__APP_VERSION__", APP_VERSION)
            .replace("__EVENT_OPTIONS__", options)
    )
