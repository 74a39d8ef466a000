#!/usr/bin/env python
# app.py – Flask front end for the shape approximation engine
# ---------------------------------------------------------------------
import time

from flask import Flask, jsonify, render_template_string, request

from .config import SHAPE_KINDS, GeometrizeConfig, GeometrizeError
from .geometrize import geometrize
from .imaging import open_image, to_png_base64

app = Flask(__name__)

# ── Geometrize defaults ─────────────────────────────────────────────
DEFAULTS = dict(
    shape_type  ='triangle',
    shape_count =100,
    mutations   =100,
    scale_down  =1.0,
)

HTML = '''
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Geometrize</title></head>
<body>
  <form action="/approximate" method="post" enctype="multipart/form-data">
    <input type="file" name="image" required>
    <select name="shape_type">
      {% for k in kinds %}<option{% if k == shape_type %} selected{% endif %}>{{ k }}</option>{% endfor %}
    </select>
    <input type="number" name="shape_count" value="{{ shape_count }}" min="0">
    <input type="number" name="mutations" value="{{ mutations }}" min="1">
    <input type="number" name="scale_down" value="{{ scale_down }}" min="1" step="0.5">
    <input type="number" name="new_width" placeholder="width" min="1">
    <input type="number" name="new_height" placeholder="height" min="1">
    <button type="submit">Geometrize</button>
  </form>
</body>
</html>
'''


def _opt(form, name, cast):
    raw = form.get(name, "").strip()
    if not raw:
        return None
    try:
        return cast(raw)
    except ValueError:
        raise GeometrizeError(f"Invalid value for {name}: {raw!r}") from None


def config_from_form(form) -> GeometrizeConfig:
    vals = dict(
        shape_kinds         =form.get("shape_type") or DEFAULTS["shape_type"],
        shape_count         =_opt(form, "shape_count", int),
        mutations_per_shape =_opt(form, "mutations", int),
        scale_down          =_opt(form, "scale_down", float),
        rng_seed            =_opt(form, "seed", int),
        alpha               =_opt(form, "alpha", int),
        background          =form.get("background") or None,
    )
    return GeometrizeConfig.from_mapping({k: v for k, v in vals.items() if v is not None})


@app.route("/", methods=["GET"])
def index():
    return render_template_string(HTML, kinds=SHAPE_KINDS, **DEFAULTS)


@app.post("/approximate")
def approximate():
    try:
        f = request.files.get("image")
        if f is None or not f.filename:
            raise GeometrizeError("No image uploaded")
        config = config_from_form(request.form)
        img = open_image(f.stream, _opt(request.form, "new_width", int),
                         _opt(request.form, "new_height", int))
    except GeometrizeError as e:
        return jsonify(ok=False, msg=str(e)), 400

    t0 = time.time()
    result = geometrize(img, config)
    rt = round(time.time() - t0, 2)

    return jsonify(
        ok          = True,
        still_png   = to_png_base64(result.image),
        shapes_json = result.shapes_json(),
        dims        = list(result.size),
        runtime     = rt,
        max_step    = len(result.shapes),
        error       = result.error,
        seed        = result.seed,
    )


if __name__ == "__main__":
    app.run(debug=True)
