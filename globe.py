#!/usr/bin/env python3
"""
╔══════════════════════════════════════════════════════════════╗
║        ELLIPSOID GLOBE  —  Python / PyQt5 + OpenGL 3.3       ║
║                                                              ║
║  pip install PyQt5 PyOpenGL numpy requests                   ║
║  python3 globe.py --coastlines data/coastlines.json          ║
╚══════════════════════════════════════════════════════════════╝

Architecture:
  • LoadThread fetches both datasets and projects every line set with
    numpy; it never touches GL
  • GlobeWidget uploads the line sets once both (a) the GL context is
    ready and (b) the arrays are built
  • A QTimer drives paintGL, which asks frame.tick() for a FramePlan
    and hands it to the GL backend
"""

import sys, time, logging

try:
    from PyQt5.QtWidgets import (QApplication, QMainWindow, QWidget, QOpenGLWidget,
        QVBoxLayout, QHBoxLayout, QLabel, QFrame, QMessageBox)
    from PyQt5.QtCore import Qt, QTimer, QThread, pyqtSignal
    from PyQt5.QtGui import QColor, QFont, QPalette, QSurfaceFormat
except ImportError:
    sys.exit("PyQt5 not found.  pip install PyQt5")

try:
    from OpenGL.GL import glClearColor, glClear, GL_COLOR_BUFFER_BIT, GL_DEPTH_BUFFER_BIT
    from OpenGL.error import GLError
except ImportError:
    sys.exit("PyOpenGL not found.  pip install PyOpenGL")

from camera import TransformGenerator
from config import GlobeConfig, build_parser
from datasets import load_dataset
from errors import DatasetError, GlobeError
from frame import DisplayMetrics, RendererState, tick
from gl_backend import GLDevice, GLRenderer
from linesets import build_line_sets, upload_line_set
from surfaces import SurfaceManager

logger = logging.getLogger("globe")

# ═══════════════════════════════════════════════════════════════
# COLOURS
# ═══════════════════════════════════════════════════════════════
C_BG     = QColor(0,0,0)
C_PANEL  = QColor(5,12,28,235)
C_BORDER = QColor(13,33,55)
C_ACCENT = QColor(0,255,231)
C_DIM    = QColor(42,64,96)
C_TEXT   = QColor(160,196,224)

def _c(q): return f"rgb({q.red()},{q.green()},{q.blue()})"
def _ca(q,a): return f"rgba({q.red()},{q.green()},{q.blue()},{a})"

PANEL_CSS = f"background:{_ca(C_PANEL,235)};border:1px solid {_c(C_BORDER)};"


# ═══════════════════════════════════════════════════════════════
# LOAD THREAD  — datasets + numpy projection, never touches GL
# ═══════════════════════════════════════════════════════════════
class LoadThread(QThread):
    progress = pyqtSignal(int, str)          # pct, message
    done     = pyqtSignal(object)            # OrderedDict name -> LineVertexBuffer
    failed   = pyqtSignal(str)

    def __init__(self, config, parent=None):
        super().__init__(parent)
        self.config = config

    def run(self):
        c = self.config
        try:
            self.progress.emit(5, "Fetching coastlines…")
            coastlines = load_dataset(c.coastlines, "coastlines", c.fetch_timeout)
            self.progress.emit(35, "Fetching country borders…")
            countries = load_dataset(c.countries, "countries", c.fetch_timeout)
            self.progress.emit(65, "Projecting line sets…")
            sets = build_line_sets(coastlines, countries, c.grid_step, c.grid_subdivision)
        except DatasetError as e:
            logger.error("Startup aborted: %s", e)
            self.failed.emit(str(e)); return
        except (MemoryError, ValueError, IndexError) as e:
            logger.exception("Building line sets failed")
            self.failed.emit(f"could not build line sets: {e!r}"); return
        self.progress.emit(95, "Line sets ready — uploading to GPU…")
        self.done.emit(sets)


# ═══════════════════════════════════════════════════════════════
# GLOBE OPENGL WIDGET
# ═══════════════════════════════════════════════════════════════
class GlobeWidget(QOpenGLWidget):
    """
    Line sets arrive via set_line_sets() from LoadThread.
    If GL is already ready when they arrive, uploads immediately;
    otherwise initializeGL() uploads when it runs.
    """
    glReady  = pyqtSignal()
    glFailed = pyqtSignal(str)

    def __init__(self, config, parent=None):
        fmt = QSurfaceFormat()
        fmt.setDepthBufferSize(24); fmt.setSamples(0)   # MSAA happens off-screen
        fmt.setVersion(3,3); fmt.setProfile(QSurfaceFormat.CoreProfile)
        super().__init__(parent)
        self.setFormat(fmt)

        self.config    = config
        self._state    = None   # RendererState, created with the GL context
        self._renderer = None
        self._sets     = None   # set by set_line_sets() from LoadThread
        self._t0       = None

        # Render timer
        self._t = QTimer(self)
        self._t.timeout.connect(self.update)
        self._t.start(config.frame_interval_ms)
        self.setMinimumSize(200,200)

    def set_line_sets(self, sets):
        """Called from main thread when LoadThread finishes."""
        self._sets = sets
        if self._state is not None:
            self.makeCurrent()
            self._upload()
            self.doneCurrent()

    def _upload(self):
        """Upload line sets to GPU. Must be called with GL context current."""
        device = self._state.surfaces.device
        for name, vertices in self._sets.items():
            self._state.line_buffers[name] = upload_line_set(device, vertices)
            logger.debug("Uploaded %s: %d bytes", name, vertices.nbytes)
        self._t0 = time.monotonic()
        logger.info("GPU upload complete")
        self.glReady.emit()

    # ── GL lifecycle ──────────────────────────────────────────
    def initializeGL(self):
        try:
            device = GLDevice()
            self._renderer = GLRenderer(device)
        except (GlobeError, GLError) as e:
            logger.exception("GL initialisation failed")
            self.glFailed.emit(str(e)); return
        logger.info("GL ready, max surface dimension %d", device.max_surface_dimension)
        c = self.config
        self._state = RendererState(SurfaceManager(device, c.samples),
                                    TransformGenerator(c.time_speedup, c.camera_distance))
        self._state.uniform_buffer = device.create_uniform_buffer()
        if self._sets is not None:   # arrays already built → upload
            self._upload()

    def resizeGL(self, w, h):
        pass   # surfaces are reconciled every frame in paintGL

    def paintGL(self):
        if self._state is None or not self._state.line_buffers:
            glClearColor(0,0,0,1); glClear(GL_COLOR_BUFFER_BIT|GL_DEPTH_BUFFER_BIT)
            return   # still loading
        dpr = self.devicePixelRatioF()
        display = DisplayMetrics(self.width(), self.height(), dpr,
                                 self._state.surfaces.device.max_surface_dimension)
        try:
            plan = tick(self._state, time.monotonic() - self._t0, display)
            if plan is None:
                return   # zero-sized layout
            target = (round(self.width()*dpr), round(self.height()*dpr))
            self._renderer.execute(plan, self._state.uniform_buffer,
                                   self.defaultFramebufferObject(), target)
        except (GlobeError, GLError):
            logger.exception("Frame %d abandoned", self._state.frames)

    def cleanup(self):
        if self._state is None: return
        self.makeCurrent()
        self._state.surfaces.release()
        device = self._state.surfaces.device
        for buf in self._state.line_buffers.values():
            device.delete_vertex_buffer(buf.handle)
        self._state.line_buffers.clear()
        if self._state.uniform_buffer is not None:
            device.delete_buffer(self._state.uniform_buffer)
        self._renderer.cleanup()
        self.doneCurrent()
        self._state = None

    # ── API ───────────────────────────────────────────────────
    def get_stats(self):
        if self._state is None: return {}, None, 0
        segs = {n: b.segment_count for n,b in self._state.line_buffers.items()}
        surf = self._state.surfaces.state
        return segs, (surf.size if surf else None), self._state.frames


# ═══════════════════════════════════════════════════════════════
# SMALL UI HELPERS
# ═══════════════════════════════════════════════════════════════
def mono(sz=9):
    f=QFont("Courier New",sz); f.setStyleHint(QFont.Monospace); return f

def lbl(text,color=None,sz=9,parent=None):
    w=QLabel(text,parent); w.setFont(mono(sz))
    w.setStyleSheet(f"color:{_c(color or C_TEXT)};background:transparent;")
    return w

class StatsPanel(QFrame):
    ROWS = ("coastlines","countries","axis","graticule")
    def __init__(self,p=None):
        super().__init__(p); self.setStyleSheet(f"QFrame{{{PANEL_CSS}}}")
        v=QVBoxLayout(self); v.setContentsMargins(10,8,10,8); v.setSpacing(3)
        v.addWidget(lbl("GLOBE STATS",C_DIM,7))
        def row(k):
            h=QHBoxLayout(); h.addWidget(lbl(k,C_DIM,8)); h.addStretch()
            val=lbl("--",C_ACCENT,8); h.addWidget(val); v.addLayout(h); return val
        self._segs={k:row(k.capitalize()) for k in self.ROWS}
        self._surf=row("Surface"); self._fps=row("FPS")
    def update(self,segs,surface,fps):
        for k,val in self._segs.items(): val.setText(f"{segs.get(k,0):,}")
        self._surf.setText(f"{surface[0]}×{surface[1]}" if surface else "--")
        self._fps.setText(str(fps))


# ═══════════════════════════════════════════════════════════════
# LOADING OVERLAY  — sits on top of the GL widget
# ═══════════════════════════════════════════════════════════════
class LoadOverlay(QWidget):
    """Plain QWidget painted over the GlobeWidget; fades out when done."""
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAttribute(Qt.WA_StyledBackground)
        self.setStyleSheet("background:rgb(0,0,0);")
        v=QVBoxLayout(self); v.setAlignment(Qt.AlignCenter); v.setSpacing(14)
        self._pct=QLabel("0%"); self._pct.setFont(mono(28)); self._pct.setAlignment(Qt.AlignCenter)
        self._pct.setStyleSheet(f"color:{_c(C_ACCENT)};font-weight:900;background:transparent;"); v.addWidget(self._pct)
        bb=QFrame(); bb.setFixedSize(320,3); bb.setStyleSheet("background:rgba(0,255,231,20);border:none;"); v.addWidget(bb,0,Qt.AlignCenter)
        self._bar=QFrame(bb); self._bar.setGeometry(0,0,0,3); self._bar.setStyleSheet(f"background:{_c(C_ACCENT)};border:none;")
        self._msg=lbl("Loading datasets…",C_DIM,7); self._msg.setAlignment(Qt.AlignCenter); v.addWidget(self._msg)
        self._fade_timer=QTimer(self); self._fade_timer.timeout.connect(self._fade_step)
        self._opacity=1.0

    def set_progress(self, pct, msg):
        self._pct.setText(f"{pct}%"); self._msg.setText(msg)
        self._bar.setGeometry(0,0,int(320*pct/100),3)

    def fade_out(self):
        self._fade_timer.start(16)

    def _fade_step(self):
        self._opacity=max(0.0,self._opacity-0.05)
        self.setStyleSheet(f"background:rgba(0,0,0,{int(self._opacity*255)});")
        if self._opacity<=0:
            self._fade_timer.stop(); self.hide()


# ═══════════════════════════════════════════════════════════════
# MAIN WINDOW
# ═══════════════════════════════════════════════════════════════
class MainWindow(QMainWindow):
    def __init__(self, config):
        super().__init__()
        self.setWindowTitle("Ellipsoid Globe")
        self.resize(1280,800); self.setMinimumSize(400,300)
        self.setStyleSheet("QMainWindow{background:rgb(0,0,0);}")
        self._last_frames=0; self._last_t=time.monotonic()

        self._root=QWidget(); self.setCentralWidget(self._root)
        self._globe=GlobeWidget(config, self._root)
        self._stats=StatsPanel(self._root)
        self._overlay=LoadOverlay(self._root)

        self._loader=LoadThread(config)
        self._loader.progress.connect(self._overlay.set_progress)
        self._loader.done.connect(self._globe.set_line_sets)
        self._loader.failed.connect(self._fatal)
        self._loader.start()

        self._globe.glReady.connect(self._on_gl_ready)
        self._globe.glFailed.connect(self._fatal)

        self._ui_t=QTimer(self); self._ui_t.timeout.connect(self._refresh); self._ui_t.start(500)
        self._layout()

    def _layout(self):
        W,H=self.width(),self.height()
        self._globe.setGeometry(0,0,W,H)
        self._stats.setGeometry(W-190,H-190,175,175)
        self._overlay.setGeometry(0,0,W,H)

    def resizeEvent(self,e):
        super().resizeEvent(e); self._layout()

    def _on_gl_ready(self):
        self._overlay.set_progress(100,"Ready!")
        QTimer.singleShot(400, self._overlay.fade_out)

    def _fatal(self, msg):
        self._overlay.set_progress(100, "FAILED")
        QMessageBox.critical(self, "Ellipsoid Globe", f"Initialisation failed:\n{msg}")
        QApplication.exit(1)

    def _refresh(self):
        segs, surface, frames = self._globe.get_stats()
        now=time.monotonic()
        fps=round((frames-self._last_frames)/max(now-self._last_t,1e-6))
        self._last_frames, self._last_t = frames, now
        self._stats.update(segs, surface, fps)

    def closeEvent(self,e):
        self._loader.quit(); self._loader.wait(1000)
        self._globe.cleanup(); super().closeEvent(e)


# ═══════════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════════
def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    config = GlobeConfig.from_args(args)

    fmt=QSurfaceFormat(); fmt.setVersion(3,3); fmt.setProfile(QSurfaceFormat.CoreProfile)
    fmt.setDepthBufferSize(24); fmt.setSwapBehavior(QSurfaceFormat.DoubleBuffer)
    QSurfaceFormat.setDefaultFormat(fmt)
    QApplication.setAttribute(Qt.AA_EnableHighDpiScaling,True)
    QApplication.setAttribute(Qt.AA_UseHighDpiPixmaps,True)

    app=QApplication(sys.argv[:1]); app.setApplicationName("Ellipsoid Globe")
    pal=QPalette()
    for role,col in [(QPalette.Window,C_BG),(QPalette.WindowText,C_TEXT),(QPalette.Base,C_PANEL),
                     (QPalette.Text,C_TEXT),(QPalette.Button,C_PANEL),(QPalette.ButtonText,C_ACCENT)]:
        pal.setColor(role,col)
    app.setPalette(pal)

    win=MainWindow(config); win.show()
    sys.exit(app.exec_())

if __name__=="__main__":
    main()
