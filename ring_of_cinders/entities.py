import math

import pygame
import pygame.gfxdraw

FPS = 30

# movement action -> (dx, dy, facing)
MOVE_VECTORS = {
    0: (0, 0, None),
    1: (0, -1, 'up'),
    2: (0, 1, 'down'),
    3: (-1, 0, 'left'),
    4: (1, 0, 'right'),
}

FACING_VECTORS = {
    'up': (0, -1),
    'down': (0, 1),
    'left': (-1, 0),
    'right': (1, 0),
}


def _rect_at(pos, size):
    return pygame.Rect(int(pos[0] - size / 2), int(pos[1] - size / 2), size, size)


class Particle:
    def __init__(self, pos, vel, color, lifetime, radius):
        self.pos = list(pos)
        self.vel = list(vel)
        self.color = color
        self.lifetime = lifetime
        self.max_lifetime = lifetime
        self.radius = radius

    def update(self):
        self.pos[0] += self.vel[0]
        self.pos[1] += self.vel[1]
        self.vel[0] *= 0.92
        self.vel[1] *= 0.92
        self.lifetime -= 1

    def draw(self, surface):
        size = int(self.radius * self.lifetime / self.max_lifetime)
        if size > 0:
            pygame.draw.circle(surface, self.color, (int(self.pos[0]), int(self.pos[1])), size)


class Brick:
    SIZE = 32
    COLOR = (136, 136, 136)
    COLOR_GLOW = (255, 140, 40)

    def __init__(self, pos):
        self.pos = pygame.Vector2(pos)
        self.glowing = False

    def rect(self):
        return _rect_at(self.pos, self.SIZE)

    def draw(self, surface, steps):
        rect = self.rect()
        if self.glowing:
            # Slow pulse, roughly 1.6s per cycle
            pulse = 0.5 + 0.5 * math.sin(steps * 2 * math.pi / 48)
            grow = int(2 + 3 * pulse)
            glow_rect = rect.inflate(grow * 2, grow * 2)
            pygame.draw.rect(surface, self.COLOR_GLOW, glow_rect, border_radius=4)
            pygame.draw.rect(surface, (200, 90, 40), rect, border_radius=2)
        else:
            pygame.draw.rect(surface, self.COLOR, rect, border_radius=2)
        pygame.draw.rect(surface, (60, 60, 60), rect, 1, border_radius=2)


class Player:
    SIZE = 32
    MAX_HP = 5
    SPEED = 200 / FPS
    ATTACK_RADIUS = 60
    ATTACK_ARC = math.pi / 2
    ATTACK_FRAMES = 6  # 0.2s
    ATTACK_COOLDOWN = 12  # 0.4s
    COLOR = (245, 245, 245)
    COLOR_SWORD = (255, 220, 120)

    def __init__(self, pos):
        self.pos = pygame.Vector2(pos)
        self.hp = self.MAX_HP
        self.facing = 'down'
        self.attack_timer = 0
        self.attack_cooldown = 0
        self.swing_id = 0
        self.hurt_flash = 0

    @property
    def is_dead(self):
        return self.hp <= 0

    def rect(self, pos=None):
        return _rect_at(self.pos if pos is None else pos, self.SIZE)

    def move(self, movement, blockers, width, height):
        """Move one frame. Each axis is resolved separately against ``blockers`` (Rects)."""
        dx, dy, facing = MOVE_VECTORS[movement]
        if facing is None:
            return
        self.facing = facing

        half = self.SIZE / 2
        current_rect = self.rect()
        for step in ((dx * self.SPEED, 0), (0, dy * self.SPEED)):
            if step == (0, 0):
                continue
            new_pos = self.pos + pygame.Vector2(step)
            new_pos.x = min(max(new_pos.x, half), width - half)
            new_pos.y = min(max(new_pos.y, half), height - half)
            new_rect = self.rect(new_pos)
            # Only block on obstacles we were not already inside of, so a brick
            # dropped on top of the player never traps them
            if any(new_rect.colliderect(b) and not current_rect.colliderect(b) for b in blockers):
                continue
            self.pos = new_pos
            current_rect = new_rect

    def start_attack(self):
        if self.attack_cooldown > 0 or self.attack_timer > 0:
            return False
        self.attack_timer = self.ATTACK_FRAMES
        self.attack_cooldown = self.ATTACK_COOLDOWN
        self.swing_id += 1
        return True

    @property
    def is_attacking(self):
        return self.attack_timer > 0

    def attack_hits(self, point):
        """True if ``point`` lies inside the current sword arc."""
        if not self.is_attacking:
            return False
        offset = pygame.Vector2(point) - self.pos
        if offset.length() > self.ATTACK_RADIUS:
            return False
        if offset.length() == 0:
            return True
        fx, fy = FACING_VECTORS[self.facing]
        centre = math.atan2(fy, fx)
        angle = math.atan2(offset.y, offset.x)
        diff = (angle - centre + math.pi) % (2 * math.pi) - math.pi
        return abs(diff) <= self.ATTACK_ARC / 2

    def take_damage(self, amount):
        self.hp = max(0, self.hp - amount)
        self.hurt_flash = 8

    def update(self):
        if self.attack_timer > 0:
            self.attack_timer -= 1
        if self.attack_cooldown > 0:
            self.attack_cooldown -= 1
        if self.hurt_flash > 0:
            self.hurt_flash -= 1

    def draw(self, surface):
        color = (255, 80, 80) if self.hurt_flash % 4 >= 2 else self.COLOR
        rect = self.rect()
        pygame.draw.rect(surface, color, rect, border_radius=3)

        # Facing notch
        fx, fy = FACING_VECTORS[self.facing]
        tip = (int(self.pos.x + fx * 12), int(self.pos.y + fy * 12))
        pygame.gfxdraw.filled_circle(surface, tip[0], tip[1], 4, (40, 40, 40))

        if self.is_attacking:
            centre = math.atan2(fy, fx)
            points = [(int(self.pos.x), int(self.pos.y))]
            for i in range(9):
                a = centre - self.ATTACK_ARC / 2 + self.ATTACK_ARC * i / 8
                points.append((
                    int(self.pos.x + math.cos(a) * self.ATTACK_RADIUS),
                    int(self.pos.y + math.sin(a) * self.ATTACK_RADIUS),
                ))
            pygame.gfxdraw.filled_polygon(surface, points, (*self.COLOR_SWORD, 90))
            pygame.gfxdraw.aapolygon(surface, points, self.COLOR_SWORD)


class Ant:
    SIZE = 24
    MAX_HP = 2
    SPEED = 160 / FPS
    COLOR = (150, 30, 20)

    def __init__(self, pos):
        self.pos = pygame.Vector2(pos)
        self.hp = self.MAX_HP
        self.is_dead = False
        self.last_swing_hit = 0

    def rect(self):
        return _rect_at(self.pos, self.SIZE)

    def update(self, target, width, height):
        if self.is_dead:
            return
        direction = pygame.Vector2(target) - self.pos
        if direction.length() > 0:
            self.pos += direction.normalize() * min(self.SPEED, direction.length())
        half = self.SIZE / 2
        self.pos.x = min(max(self.pos.x, half), width - half)
        self.pos.y = min(max(self.pos.y, half), height - half)

    def take_damage(self, amount):
        """Apply damage; returns True if this killed the ant."""
        if self.is_dead:
            return False
        self.hp -= amount
        if self.hp <= 0:
            self.hp = 0
            self.is_dead = True
            return True
        return False

    def draw(self, surface):
        x, y = int(self.pos.x), int(self.pos.y)
        # Three body segments
        pygame.gfxdraw.filled_circle(surface, x - 7, y, 4, self.COLOR)
        pygame.gfxdraw.filled_circle(surface, x, y, 5, self.COLOR)
        pygame.gfxdraw.filled_circle(surface, x + 8, y, 6, self.COLOR)
        if self.hp < self.MAX_HP:
            pygame.draw.rect(surface, (255, 60, 60), (x - 8, y - 12, int(16 * self.hp / self.MAX_HP), 2))


class AntHill:
    SIZE = 48
    BASE_HP = 10
    SPAWN_INTERVAL = 2.5 * FPS
    SPAWN_DISTANCE = 60
    STATE_COLORS = [(139, 90, 43), (120, 75, 38), (98, 60, 32), (70, 45, 25)]

    def __init__(self, pos, hp_mult=1.0, spawn_interval_mult=1.0):
        self.pos = pygame.Vector2(pos)
        self.max_hp = max(1, round(self.BASE_HP * hp_mult))
        self.hp = self.max_hp
        self.spawn_interval = max(1, round(self.SPAWN_INTERVAL * spawn_interval_mult))
        self.spawn_timer = 0
        self.is_dead = False

    def rect(self):
        return _rect_at(self.pos, self.SIZE)

    def update(self, rng, width, height):
        """Advance the spawn timer; returns a new Ant when one hatches."""
        if self.is_dead:
            return None
        self.spawn_timer += 1
        if self.spawn_timer < self.spawn_interval:
            return None
        self.spawn_timer = 0
        angle = rng.uniform(0, 2 * math.pi)
        half = Ant.SIZE / 2
        x = min(max(self.pos.x + math.cos(angle) * self.SPAWN_DISTANCE, half), width - half)
        y = min(max(self.pos.y + math.sin(angle) * self.SPAWN_DISTANCE, half), height - half)
        # sfx: ant_hatch
        return Ant((x, y))

    def take_damage(self, amount):
        """Apply damage; returns True if this destroyed the hill."""
        if self.is_dead:
            return False
        self.hp -= amount
        if self.hp <= 0:
            self.hp = 0
            self.is_dead = True
            return True
        return False

    def damage_state(self):
        """0 = intact .. 3 = nearly destroyed (thresholds 8/5/2 of 10, scaled)."""
        frac = self.hp / self.max_hp
        if frac >= 0.8:
            return 0
        elif frac >= 0.5:
            return 1
        elif frac >= 0.2:
            return 2
        return 3

    def draw(self, surface):
        x, y = int(self.pos.x), int(self.pos.y)
        state = self.damage_state()
        color = self.STATE_COLORS[state]
        radius = self.SIZE // 2 - state * 2
        pygame.gfxdraw.filled_circle(surface, x, y, radius, color)
        pygame.gfxdraw.aacircle(surface, x, y, radius, (50, 30, 15))
        pygame.gfxdraw.filled_circle(surface, x, y, 6, (25, 15, 10))

        # Health bar
        bar_w = int(self.SIZE * self.hp / self.max_hp)
        pygame.draw.rect(surface, (40, 40, 40), (x - self.SIZE // 2, y + self.SIZE // 2 + 4, self.SIZE, 4))
        pygame.draw.rect(surface, (230, 120, 40), (x - self.SIZE // 2, y + self.SIZE // 2 + 4, bar_w, 4))
