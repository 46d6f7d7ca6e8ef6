# Руководство к файлу (FAST_API/pages.py)
# Назначение:
# - HTML-страницы imgbed: вход, загрузка, админка, карточки файлов для /search.
# Важно:
# - Все пользовательские значения проходят через html.escape.
# - Скрипты страниц обращаются к JSON-эндпоинтам админки (fetch + cookie).

from __future__ import annotations

import html
import json
from typing import Iterable, Optional

from BACKEND.STORAGE.mime import format_size


_BASE_STYLE = """
body{font-family:system-ui,sans-serif;max-width:1100px;margin:24px auto;padding:0 16px;color:#222}
header{display:flex;gap:16px;align-items:center;margin-bottom:16px}
.card{border:1px solid #ddd;border-radius:8px;padding:10px;display:flex;flex-direction:column;gap:6px}
.grid{display:grid;grid-template-columns:repeat(auto-fill,minmax(220px,1fr));gap:12px}
.card img,.card video{max-width:100%;max-height:160px;object-fit:contain}
.muted{color:#777;font-size:12px}
input,select,button{padding:6px 10px}
"""


def _layout(title: str, body: str, script: str = "") -> str:
    return (
        "<!DOCTYPE html><html lang=\"ru\"><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title><style>{_BASE_STYLE}</style></head>"
        f"<body>{body}<script>{script}</script></body></html>"
    )


def login_page(redirect: str = "/", error: Optional[str] = None) -> str:
    target = json.dumps(redirect).replace("</", "<\\/")
    err = f"<p style=\"color:#c00\">{html.escape(error)}</p>" if error else ""
    body = f"""
<h2>Вход</h2>{err}
<form id="login">
  <p><input name="username" placeholder="Логин" autocomplete="username"></p>
  <p><input name="password" type="password" placeholder="Пароль" autocomplete="current-password"></p>
  <p><button type="submit">Войти</button></p>
</form>"""
    script = f"""
document.getElementById('login').onsubmit = async (e) => {{
  e.preventDefault();
  const f = new FormData(e.target);
  const r = await fetch('/login', {{method:'POST', headers:{{'Content-Type':'application/json'}},
    body: JSON.stringify({{username:f.get('username'), password:f.get('password')}})}});
  if (r.ok) location.href = {target};
  else alert((await r.json()).msg || 'Ошибка входа');
}};"""
    return _layout("Вход", body, script)


def _category_options(categories: Iterable, selected: Optional[int] = None) -> str:
    out = []
    for c in categories:
        sel = " selected" if selected is not None and int(c.id) == int(selected) else ""
        out.append(f"<option value=\"{int(c.id)}\"{sel}>{html.escape(c.name)}</option>")
    return "".join(out)


def upload_page(categories: Iterable, default_storage: str, max_size_mb: int) -> str:
    r2 = " selected" if default_storage == "r2" else ""
    body = f"""
<header><h2>Загрузка файла</h2><a href="/admin">Админка</a></header>
<form id="up">
  <p><input type="file" name="file" required></p>
  <p>Категория: <select name="category">{_category_options(categories)}</select>
     Хранилище: <select name="storage_type"><option value="telegram">Telegram</option><option value="r2"{r2}>R2</option></select></p>
  <p class="muted">Максимальный размер: {int(max_size_mb)} MB</p>
  <p><button type="submit">Загрузить</button></p>
</form>
<pre id="out"></pre>"""
    script = """
document.getElementById('up').onsubmit = async (e) => {
  e.preventDefault();
  const r = await fetch('/upload', {method:'POST', body:new FormData(e.target)});
  const j = await r.json();
  document.getElementById('out').textContent = j.status ? j.url : (j.msg || j.error);
};"""
    return _layout("Загрузка", body, script)


def file_card(f) -> str:
    url = html.escape(f.url)
    name = html.escape(f.file_name or f.url.rsplit("/", 1)[-1])
    mime = (f.mime_type or "").lower()
    if mime.startswith("image/"):
        preview = f"<img src=\"{url}\" loading=\"lazy\" alt=\"{name}\">"
    elif mime.startswith("video/"):
        preview = f"<video src=\"{url}\" controls preload=\"none\"></video>"
    elif mime.startswith("audio/"):
        preview = f"<audio src=\"{url}\" controls preload=\"none\"></audio>"
    else:
        preview = f"<div class=\"muted\">{html.escape(mime or 'file')}</div>"
    created = f.created_at.strftime("%Y-%m-%d %H:%M") if f.created_at else ""
    remark = f"<div class=\"muted\">{html.escape(f.remark)}</div>" if f.remark else ""
    return (
        f"<div class=\"card\" data-url=\"{url}\">"
        f"<label><input type=\"checkbox\" class=\"pick\" value=\"{url}\"> {name}</label>"
        f"{preview}<a href=\"{url}\" target=\"_blank\">{url}</a>"
        f"<div class=\"muted\">{format_size(f.file_size)} · {html.escape(f.storage_type or '')} · {created}</div>{remark}</div>"
    )


def file_cards(files: Iterable) -> str:
    return "".join(file_card(f) for f in files) or "<p class=\"muted\">Ничего не найдено</p>"


def admin_page(files: Iterable, categories: Iterable, total: int) -> str:
    cats = list(categories)
    body = f"""
<header><h2>Файлы ({int(total)})</h2><a href="/upload">Загрузка</a><a href="/logout">Выход</a></header>
<p>
  <input id="q" placeholder="Поиск"> <button onclick="search()">Найти</button>
  <select id="cat">{_category_options(cats)}</select>
  <button onclick="bulk('/change-category', {{categoryId: +document.getElementById('cat').value}})">В категорию</button>
  <button onclick="bulk('/update-remark', {{remark: prompt('Примечание') || ''}})">Примечание</button>
  <button onclick="bulk('/delete-multiple', {{}})">Удалить</button>
  <button onclick="rename()">Переименовать</button>
</p>
<p>
  <input id="newcat" placeholder="Новая категория"> <button onclick="createCat()">Создать</button>
  <button onclick="deleteCat()">Удалить выбранную категорию</button>
</p>
<div class="grid" id="files">{file_cards(files)}</div>"""
    script = """
const post = (u, b) => fetch(u, {method:'POST', headers:{'Content-Type':'application/json'}, body:JSON.stringify(b)}).then(r => r.json());
const picked = () => [...document.querySelectorAll('.pick:checked')].map(x => x.value);
async function search(){ const j = await post('/search', {query: document.getElementById('q').value}); document.getElementById('files').innerHTML = j.html; }
async function bulk(u, extra){ const urls = picked(); if(!urls.length) return; const j = await post(u, Object.assign({urls}, extra)); alert(j.message || j.msg); location.reload(); }
async function rename(){ const urls = picked(); if(urls.length !== 1) return alert('Выберите один файл'); const s = prompt('Новое имя без расширения'); if(!s) return; const j = await post('/update-suffix', {url: urls[0], suffix: s}); alert(j.msg); location.reload(); }
async function createCat(){ const j = await post('/create-category', {name: document.getElementById('newcat').value}); alert(j.msg); location.reload(); }
async function deleteCat(){ const j = await post('/delete-category', {id: +document.getElementById('cat').value}); alert(j.msg); location.reload(); }
"""
    return _layout("Админка", body, script)
