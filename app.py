"""
=============================================================================
DEFOG — Single Image Haze Removal
=============================================================================
Streamlit Application

Upload a hazy photo → see the transmission map, the defogged result and
the high-frequency pixel counts before and after.

Usage:
    streamlit run app.py
=============================================================================
"""

import io
import time

import cv2
import numpy as np
import matplotlib
import matplotlib.pyplot as plt
import streamlit as st
from PIL import Image, UnidentifiedImageError

matplotlib.use("Agg")

# ---------------------------------------------------------------------------
# Pipeline imports
# ---------------------------------------------------------------------------
from errors import DefogError
from preprocessing import resize_image, to_grayscale, ensure_rgb
from haze_estimation import defog, T0
from haze_metric import count_high_frequency, compare_metrics
from output_handler import to_uint8


MAX_DIMENSION = 640   # Uploaded photos are downscaled to keep the demo snappy


# =====================================================================
# PAGE CONFIG
# =====================================================================
st.set_page_config(
    page_title="DEFOG | Haze Removal",
    page_icon="🌫️",
    layout="wide",
)


# =====================================================================
# HELPERS
# =====================================================================

def pil_to_bgr(pil_img: Image.Image) -> np.ndarray:
    """PIL Image -> OpenCV BGR array."""
    return cv2.cvtColor(np.array(pil_img.convert("RGB")), cv2.COLOR_RGB2BGR)


def render_transmission_with_bar(transmission: np.ndarray) -> np.ndarray:
    """Render the transmission map with a colourbar as a complete figure."""
    h, w = transmission.shape
    fig_w = 5
    fig_h = fig_w * h / w
    fig, ax = plt.subplots(figsize=(fig_w, fig_h))
    im = ax.imshow(np.clip(transmission, 0.0, 1.0), cmap="jet", vmin=0.0, vmax=1.0)
    ax.axis("off")
    cbar = fig.colorbar(im, ax=ax, fraction=0.046, pad=0.03, shrink=0.85)
    cbar.ax.tick_params(labelsize=8)
    cbar.set_label("Transmission t(x)", fontsize=9)
    fig.tight_layout(pad=0.3)

    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=130, bbox_inches="tight",
                facecolor="white", edgecolor="none")
    plt.close(fig)
    buf.seek(0)
    return np.array(Image.open(buf))


def encode_png(image_bgr: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", image_bgr)
    if not ok:
        raise DefogError("Could not encode the result as PNG")
    return buf.tobytes()


# =====================================================================
# PIPELINE
# =====================================================================

def run_pipeline(pil_image: Image.Image, t0: float) -> dict:
    """
    Defog an uploaded image.

    Returns a dict with:
        original_rgb, output_rgb, output_bgr, transmission_vis,
        atmospheric_light, metrics, elapsed
    """
    start = time.time()

    bgr = resize_image(pil_to_bgr(pil_image), MAX_DIMENSION)
    before = count_high_frequency(bgr)

    result = defog(bgr, to_grayscale(bgr), t0=t0)
    output_bgr = to_uint8(result["output"])
    after = count_high_frequency(output_bgr)

    return {
        "original_rgb": ensure_rgb(bgr),
        "output_rgb": ensure_rgb(output_bgr),
        "output_bgr": output_bgr,
        "transmission_vis": render_transmission_with_bar(result["transmission_map"]),
        "atmospheric_light": result["atmospheric_light"],
        "metrics": compare_metrics(before, after),
        "elapsed": time.time() - start,
    }


# =====================================================================
# MAIN UI
# =====================================================================

def main():
    st.title("🌫️ Single Image Haze Removal")
    st.caption("Dark-channel based defogging with a transmission floor")

    with st.sidebar:
        st.markdown("### Settings")
        t0 = st.slider("Transmission floor t0", 0.05, 1.0, T0, 0.01,
                       help="Lower values remove more haze but amplify noise.")

    uploaded = st.file_uploader(
        "Upload a hazy photo",
        type=["jpg", "jpeg", "png"],
        help="JPG / PNG. Outdoor daytime scenes work best.",
    )

    if uploaded is None:
        st.info("📸 Drag & drop or browse to upload a photo. "
                "Defogging starts automatically.")
        return

    try:
        pil_image = Image.open(uploaded).convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        st.error(f"Could not read the uploaded file: {e}")
        return

    with st.spinner("Removing haze..."):
        try:
            result = run_pipeline(pil_image, t0)
        except DefogError as e:
            st.error(f"Defogging failed: {e}")
            return

    st.subheader("📊 Results")
    st.caption(f"Processed in {result['elapsed']:.2f}s")

    col1, col2, col3 = st.columns(3, gap="large")
    with col1:
        st.image(result["original_rgb"], caption="📷 Uploaded Image")
    with col2:
        st.image(result["transmission_vis"], caption="🗺️ Transmission Map")
    with col3:
        st.image(result["output_rgb"], caption="✨ Defogged Image")

    metrics = result["metrics"]
    m1, m2, m3 = st.columns(3)
    m1.metric("Atmospheric light", f"{result['atmospheric_light']:.1f}")
    m2.metric("High-frequency pixels (before)", metrics["before"])
    m3.metric("High-frequency pixels (after)", metrics["after"],
              delta=metrics["delta"])

    st.download_button(
        "⬇️ Download defogged image",
        data=encode_png(result["output_bgr"]),
        file_name="out.png",
        mime="image/png",
    )

    with st.expander("🔬  Technical Methodology"):
        st.markdown("""
### Pipeline

```
Image Upload  →  Dark channel of the whole image  →  Atmospheric light A
                                   ↓
                 20×20 window dark channel per pixel
                                   ↓
                 Transmission  t(x) = 1 − I_dark(x) / A
                                   ↓
                 Recovery  J(x) = (I(x) − A) / max(t(x), t0) + A
```

**Reference:**
- He, K., Sun, J., & Tang, X. (2009). *Single Image Haze Removal Using Dark Channel Prior.* IEEE TPAMI.
""")


# =====================================================================
if __name__ == "__main__":
    main()
