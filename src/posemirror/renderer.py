"""
Renderer loop
Once per display refresh: gather live and AI poses, rebuild the metaball
primitives, feed them to the scalar field and step the physics world.
"""

import time

import numpy as np

from posemirror.config import RenderConfig
from posemirror.skeleton import reconstruct


class MetaballField:
    """Scalar field sampled on the z=0 slice of a unit cube.

    Balls follow the usual metaball falloff strength / r^2 - subtract and the
    surface is wherever the summed field passes the isolation level. This is
    a preview; polygonization is left to a 3D engine.
    """

    def __init__(self, resolution=96, isolation=800.0):
        self.resolution = resolution
        self.isolation = isolation
        coords = np.arange(resolution, dtype=np.float64) / resolution
        self._grid_x, self._grid_y = np.meshgrid(coords, coords)
        self.field = np.zeros((resolution, resolution))
        self.colors = np.zeros((resolution, resolution, 3))
        self.surface = np.zeros((resolution, resolution), dtype=bool)
        self.ball_count = 0

    def reset(self):
        self.field[:] = 0.0
        self.colors[:] = 0.0
        self.ball_count = 0

    def add_ball(self, x, y, z, strength, subtract, color):
        self.ball_count += 1
        if strength <= 0 or subtract <= 0:
            return
        dist_sq = (self._grid_x - x) ** 2 + (self._grid_y - y) ** 2 + z ** 2
        val = strength / (1e-6 + dist_sq) - subtract
        inside = val > 0
        self.field[inside] += val[inside]
        self.colors[inside] += np.outer(val[inside], color)

    def update(self):
        self.surface = self.field > self.isolation

    def to_image(self, size=None):
        """BGR uint8 image of the surface, Y up"""
        weights = np.maximum(self.field, 1e-9)[..., None]
        rgb = np.clip(self.colors / weights, 0.0, 1.0)
        rgb[~self.surface] = 0.0
        image = (rgb[::-1, :, ::-1] * 255).astype(np.uint8)
        if size is not None:
            import cv2
            image = cv2.resize(image, (size, size), interpolation=cv2.INTER_LINEAR)
        return image


class NullPhysicsWorld:
    """Stand-in physics stepper; nothing reads results back"""

    def __init__(self):
        self.steps = 0

    def step(self):
        self.steps += 1


class RenderLoop:
    """Reads the session's latest snapshot and rebuilds the scene"""

    def __init__(self, session, field=None, physics=None, config: RenderConfig = None,
                 clock=time.monotonic):
        self.session = session
        self.config = config or RenderConfig()
        self.field = field or MetaballField(self.config.resolution, self.config.isolation)
        self.physics = physics or NullPhysicsWorld()
        self.clock = clock
        self.strength = self.config.strength
        self.subdivisions = self.config.subdivisions

    def set_strength(self, strength):
        self.strength = max(0.0, float(strength))

    def set_subdivisions(self, subdivisions):
        self.subdivisions = max(1, int(subdivisions))

    def bodies(self, now=None):
        """Live bodies followed by AI bodies; list position is the lane"""
        now = self.clock() if now is None else now
        live = list(self.session.latest.latest().joint_sets)
        return live + self.session.ai_poses(now)

    def tick(self, now=None):
        bodies = self.bodies(now)
        players = self.session.number_of_players

        self.field.reset()
        primitives = []
        for body_index, pose in enumerate(bodies):
            primitives.extend(reconstruct(
                pose, body_index, players, self.strength, self.subdivisions, self.config,
            ))

        for p in primitives:
            self.field.add_ball(p.x, p.y, p.z, p.strength, p.subtract, p.color)

        self.field.update()
        self.physics.step()
        return primitives
