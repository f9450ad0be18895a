"""
OpenGL 3.3 core backend: render targets, vertex/uniform buffers and the
line-list pipeline. All calls require a current GL context.
"""

import ctypes
import logging
from collections import namedtuple

from OpenGL.GL import *
from OpenGL.GL import shaders
from OpenGL.error import GLError

from errors import GLBackendError, SurfaceAllocationError
from frame import UNIFORM_SIZE
from linesets import VERTEX_SIZE
from surfaces import COLOR

logger = logging.getLogger(__name__)

UNIFORM_BINDING = 0

VERTEX_SHADER = """
#version 330 core
layout(location = 0) in vec4 position;
layout(std140) uniform Transforms {
    mat4 modelView;
    mat4 projection;
    mat4 normalModelView;
};
out vec4 fragPosition;
void main() {
    gl_Position  = projection * modelView * position;
    fragPosition = 0.5 * (position + vec4(1.0));
}
"""

FRAGMENT_SHADER = """
#version 330 core
in vec4 fragPosition;
out vec4 fragColor;
void main() {
    fragColor = fragPosition;
}
"""

GLTarget = namedtuple("GLTarget", "kind renderbuffer width height samples")
GLVertexBuffer = namedtuple("GLVertexBuffer", "vao vbo")


# ═══════════════════════════════════════════════════════════════
# DEVICE  — allocation only, no drawing
# ═══════════════════════════════════════════════════════════════
class GLDevice:
    def __init__(self):
        self.max_surface_dimension = int(glGetIntegerv(GL_MAX_RENDERBUFFER_SIZE))
        self.max_samples = int(glGetIntegerv(GL_MAX_SAMPLES))

    def create_texture(self, width, height, kind, samples):
        fmt = GL_RGBA8 if kind == COLOR else GL_DEPTH_COMPONENT24
        rb = glGenRenderbuffers(1)
        try:
            glBindRenderbuffer(GL_RENDERBUFFER, rb)
            if samples > 1:
                glRenderbufferStorageMultisample(GL_RENDERBUFFER, min(samples, self.max_samples),
                                                 fmt, width, height)
            else:
                glRenderbufferStorage(GL_RENDERBUFFER, fmt, width, height)
            glBindRenderbuffer(GL_RENDERBUFFER, 0)
        except GLError as e:
            glDeleteRenderbuffers(1, [rb])
            raise SurfaceAllocationError(f"{kind} target {width}x{height}: {e}") from e
        return GLTarget(kind, rb, width, height, samples)

    def create_view(self, target):
        # renderbuffers attach to a framebuffer directly
        return target

    def destroy_texture(self, target):
        glDeleteRenderbuffers(1, [target.renderbuffer])

    def create_vertex_buffer(self, data):
        vao = glGenVertexArrays(1); vbo = glGenBuffers(1)
        glBindVertexArray(vao)
        glBindBuffer(GL_ARRAY_BUFFER, vbo)
        glBufferData(GL_ARRAY_BUFFER, len(data), data, GL_STATIC_DRAW)
        glVertexAttribPointer(0, 4, GL_FLOAT, GL_FALSE, VERTEX_SIZE, ctypes.c_void_p(0))
        glEnableVertexAttribArray(0)
        glBindVertexArray(0)
        glBindBuffer(GL_ARRAY_BUFFER, 0)
        return GLVertexBuffer(vao, vbo)

    def delete_vertex_buffer(self, buf):
        glDeleteVertexArrays(1, [buf.vao])
        glDeleteBuffers(1, [buf.vbo])

    def create_uniform_buffer(self, size=UNIFORM_SIZE):
        ubo = glGenBuffers(1)
        glBindBuffer(GL_UNIFORM_BUFFER, ubo)
        glBufferData(GL_UNIFORM_BUFFER, size, None, GL_DYNAMIC_DRAW)
        glBindBuffer(GL_UNIFORM_BUFFER, 0)
        glBindBufferBase(GL_UNIFORM_BUFFER, UNIFORM_BINDING, ubo)
        return ubo

    def write_buffer(self, ubo, offset, data):
        glBindBuffer(GL_UNIFORM_BUFFER, ubo)
        glBufferSubData(GL_UNIFORM_BUFFER, offset, len(data), data)
        glBindBuffer(GL_UNIFORM_BUFFER, 0)

    def delete_buffer(self, ubo):
        glDeleteBuffers(1, [ubo])


# ═══════════════════════════════════════════════════════════════
# RENDERER  — executes FramePlans
# ═══════════════════════════════════════════════════════════════
class GLRenderer:
    def __init__(self, device):
        self.device = device
        try:
            self.program = shaders.compileProgram(
                shaders.compileShader(VERTEX_SHADER, GL_VERTEX_SHADER),
                shaders.compileShader(FRAGMENT_SHADER, GL_FRAGMENT_SHADER))
        except (RuntimeError, GLError) as e:
            raise GLBackendError(f"shader build failed: {e}") from e
        block = glGetUniformBlockIndex(self.program, "Transforms")
        glUniformBlockBinding(self.program, block, UNIFORM_BINDING)
        self._fbo = glGenFramebuffers(1)
        self._attached = None

    def _attach(self, surface):
        glBindFramebuffer(GL_FRAMEBUFFER, self._fbo)
        if surface is self._attached:
            return
        glFramebufferRenderbuffer(GL_FRAMEBUFFER, GL_COLOR_ATTACHMENT0, GL_RENDERBUFFER,
                                  surface.color_view.renderbuffer)
        glFramebufferRenderbuffer(GL_FRAMEBUFFER, GL_DEPTH_ATTACHMENT, GL_RENDERBUFFER,
                                  surface.depth_view.renderbuffer)
        status = glCheckFramebufferStatus(GL_FRAMEBUFFER)
        if status != GL_FRAMEBUFFER_COMPLETE:
            self._attached = None
            raise SurfaceAllocationError(f"framebuffer incomplete: 0x{int(status):x}")
        self._attached = surface
        logger.debug("Framebuffer attached to %dx%d targets", *surface.size)

    def execute(self, plan, uniform_buffer, target_fbo, target_size):
        """Draw ``plan`` off-screen, then resolve into ``target_fbo``."""
        surface = plan.surface
        w, h = surface.size
        self._attach(surface)
        glViewport(0, 0, w, h)
        glEnable(GL_DEPTH_TEST); glDepthFunc(GL_LESS); glDepthMask(GL_TRUE)
        glClearColor(*plan.clear_color); glClearDepth(plan.clear_depth)
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)

        self.device.write_buffer(uniform_buffer, 0, plan.uniform_data)
        glUseProgram(self.program)
        for draw in plan.draws:
            glBindVertexArray(draw.buffer.vao)
            glDrawArrays(GL_LINES, 0, draw.vertex_count)
        glBindVertexArray(0)
        glUseProgram(0)

        # multisample resolve requires matching rectangles
        dw, dh = target_size
        if surface.color_target.samples > 1:
            dw, dh = w, h
        glBindFramebuffer(GL_READ_FRAMEBUFFER, self._fbo)
        glBindFramebuffer(GL_DRAW_FRAMEBUFFER, target_fbo)
        glBlitFramebuffer(0, 0, w, h, 0, 0, dw, dh, GL_COLOR_BUFFER_BIT, GL_NEAREST)
        glBindFramebuffer(GL_FRAMEBUFFER, target_fbo)

    def cleanup(self):
        glDeleteFramebuffers(1, [self._fbo])
        glDeleteProgram(self.program)
        self._attached = None
