import argparse
import logging
import math
import os

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame
import pygame.gfxdraw

from ring_of_cinders.enclosure import EnclosureDetector
from ring_of_cinders.entities import FACING_VECTORS, FPS, Ant, AntHill, Brick, Particle, Player
from ring_of_cinders.settings import DEFAULT_SETTINGS_PATH, DIFFICULTY_CONFIG, Settings

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

logger = logging.getLogger(__name__)


class GameEnv(gym.Env):
    metadata = {"render_modes": ["rgb_array"], "render_fps": FPS}

    user_guide = (
        "Controls: Arrow keys to move. Space to swing your sword. "
        "Shift to drop a brick in front of you. Seal anthills inside a ring of bricks to burn them."
    )

    game_description = (
        "Wall anthills in with bricks to light a furnace inside the ring, "
        "and fend off the ants until every hill is ash."
    )

    auto_advance = True

    # --- Constants ---
    WIDTH, HEIGHT = 800, 600
    CELL_SIZE = 32
    MAX_STEPS = 300 * FPS  # 5 minutes
    MAX_BRICKS = 8
    BRICK_COOLDOWN = round(0.8 * FPS)
    BRICK_PLACEMENT_DISTANCE = 50
    FURNACE_DAMAGE_INTERVAL = FPS  # 1 second
    ANT_FURNACE_RANGE = 16
    HILL_FURNACE_RANGE = 24
    TUTORIAL_FRAMES = 3 * FPS
    HILL_MARGIN = 80

    # --- Colors ---
    COLOR_BG = (62, 94, 44)
    COLOR_GRID = (70, 104, 50)
    COLOR_EMBER = (210, 80, 30)
    COLOR_TEXT = (255, 255, 255)
    COLOR_TEXT_DIM = (204, 204, 204)
    COLOR_WARN = (255, 136, 68)
    COLOR_EMPTY = (255, 68, 68)

    def __init__(self, render_mode="rgb_array", difficulty=None, settings=None):
        super().__init__()

        self.render_mode = render_mode
        self.settings = settings if settings is not None else Settings()
        if difficulty is not None and difficulty not in DIFFICULTY_CONFIG:
            raise ValueError(f"Unknown difficulty: {difficulty!r}")
        self.difficulty = difficulty or self.settings.difficulty

        # --- Gymnasium Spaces ---
        self.observation_space = gym.spaces.Box(
            low=0, high=255, shape=(self.HEIGHT, self.WIDTH, 3), dtype=np.uint8
        )
        self.action_space = MultiDiscrete([5, 2, 2])

        # --- Pygame Setup ---
        pygame.init()
        pygame.font.init()
        self.screen = pygame.Surface((self.WIDTH, self.HEIGHT))
        self.clock = pygame.time.Clock()
        self.font_ui = pygame.font.Font(None, 30)
        self.font_small = pygame.font.Font(None, 24)
        self.font_large = pygame.font.Font(None, 64)

        self.enclosure_detector = EnclosureDetector(self.WIDTH, self.HEIGHT, self.CELL_SIZE)

        # State variables, filled in by reset()
        self.player = None
        self.bricks = []
        self.ants = []
        self.anthills = []
        self.particles = []
        self.enclosure = None
        self._enclosed_points = np.zeros((0, 2))
        self.furnace_active = False
        self.furnace_timer = 0
        self.brick_cooldown = 0
        self.tutorial_timer = 0
        self.steps = 0
        self.score = 0
        self.game_over = False
        self.game_state = 'playing'
        self.reward_this_step = 0
        self.last_space_state = 0
        self.last_shift_state = 0

        self.reset()
        self.validate_implementation()

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)

        config = DIFFICULTY_CONFIG[self.difficulty]

        self.steps = 0
        self.score = 0
        self.game_over = False
        self.game_state = 'playing'
        self.reward_this_step = 0
        self.last_space_state = 0
        self.last_shift_state = 0

        self.player = Player((self.WIDTH / 2, self.HEIGHT / 2))
        self.bricks = []
        self.ants = []
        self.particles = []
        self.brick_cooldown = 0

        self.enclosure = None
        self.furnace_active = False
        self.furnace_timer = 0
        self._enclosed_points = np.zeros((0, 2))

        hill_positions = [
            (self.HILL_MARGIN, self.HILL_MARGIN),
            (self.WIDTH - self.HILL_MARGIN, self.HILL_MARGIN),
            (self.WIDTH / 2, self.HEIGHT - self.HILL_MARGIN),
        ]
        self.anthills = [
            AntHill(pos, hp_mult=config['anthill_hp_mult'], spawn_interval_mult=config['spawn_interval_mult'])
            for pos in hill_positions
        ]

        self.tutorial_timer = 0 if self.settings.tutorial_shown else self.TUTORIAL_FRAMES

        return self._get_observation(), self._get_info()

    def step(self, action):
        if self.game_over:
            return self._get_observation(), 0, True, False, self._get_info()

        self.reward_this_step = 0
        movement, space_action, shift_action = (int(a) for a in action)

        self._update_tutorial(movement, space_action, shift_action)
        self._handle_input(movement, space_action, shift_action)
        self._update_anthills()
        self._update_ants()
        self._check_ant_player_collision()
        self._check_sword_damage()
        self._update_furnace()
        self._update_particles()

        self.ants = [a for a in self.ants if not a.is_dead]
        self.anthills = [h for h in self.anthills if not h.is_dead]

        self.steps += 1
        terminated = self._check_termination()
        reward = self.reward_this_step

        if terminated:
            self.game_over = True
            if self.game_state == 'won':
                reward += 100
                # sfx: victory_fanfare
            elif self.game_state == 'lost':
                reward -= 100
                # sfx: defeat
            logger.info("Game over (%s) after %.1fs, score %d", self.game_state, self.steps / FPS, self.score)

        return (
            self._get_observation(),
            reward,
            terminated,
            False,
            self._get_info()
        )

    # --- Input ---

    def _update_tutorial(self, movement, space_action, shift_action):
        if self.tutorial_timer <= 0:
            return
        self.tutorial_timer -= 1
        if movement or space_action or shift_action:
            self.tutorial_timer = 0
        if self.tutorial_timer == 0:
            self.settings.tutorial_shown = True
            self.settings.save()

    def _handle_input(self, movement, space_action, shift_action):
        self.player.update()
        if self.brick_cooldown > 0:
            self.brick_cooldown -= 1

        blockers = [b.rect() for b in self.bricks] + [h.rect() for h in self.anthills]
        self.player.move(movement, blockers, self.WIDTH, self.HEIGHT)

        # --- Sword (on press) ---
        if space_action == 1 and self.last_space_state == 0:
            self.player.start_attack()  # sfx: sword_swing

        # --- Place Brick (on press) ---
        if shift_action == 1 and self.last_shift_state == 0:
            if self.brick_cooldown <= 0 and len(self.bricks) < self.MAX_BRICKS:
                self._place_brick()

        self.last_space_state = space_action
        self.last_shift_state = shift_action

    def brick_drop_position(self):
        """Where a brick would land right now: ahead of the player, kept on screen."""
        fx, fy = FACING_VECTORS[self.player.facing]
        x = self.player.pos.x + fx * self.BRICK_PLACEMENT_DISTANCE
        y = self.player.pos.y + fy * self.BRICK_PLACEMENT_DISTANCE
        half = Brick.SIZE / 2
        return (
            min(max(x, half), self.WIDTH - half),
            min(max(y, half), self.HEIGHT - half),
        )

    def _place_brick(self):
        self.brick_cooldown = self.BRICK_COOLDOWN
        brick = Brick(self.brick_drop_position())
        self.bricks.append(brick)
        self._create_particles(brick.pos, (170, 170, 170), 8)
        # sfx: brick_place
        self._check_for_enclosures()

    # --- Furnace ---

    def _check_for_enclosures(self):
        result = self.enclosure_detector.detect([b.pos for b in self.bricks])
        was_enclosed = self.enclosure is not None and self.enclosure.has_enclosure
        self.enclosure = result
        self._enclosed_points = np.array(result.enclosed_cells, dtype=float).reshape(-1, 2)

        if result.has_enclosure and not was_enclosed:
            logger.info("Furnace lit: %d enclosed cells", len(result.enclosed_cells))
            self.furnace_active = True
            self.furnace_timer = 0
            # sfx: ignite
        elif not result.has_enclosure and was_enclosed:
            logger.info("Furnace out")
            self.furnace_active = False
            self.furnace_timer = 0

        half = Brick.SIZE / 2
        boundary = np.array(result.enclosure_boundary, dtype=float).reshape(-1, 2)
        for brick in self.bricks:
            brick.glowing = bool(
                len(boundary)
                and np.any(np.all(np.abs(boundary - (brick.pos.x, brick.pos.y)) < half, axis=1))
            )

    def in_furnace(self, pos, distance):
        """True if ``pos`` is within ``distance`` (on both axes) of an enclosed cell centre."""
        if not len(self._enclosed_points):
            return False
        delta = np.abs(self._enclosed_points - (pos[0], pos[1]))
        return bool(np.any(np.all(delta < distance, axis=1)))

    def _update_furnace(self):
        if not self.furnace_active:
            return
        self.furnace_timer += 1
        if self.furnace_timer >= self.FURNACE_DAMAGE_INTERVAL:
            self.furnace_timer = 0
            self._process_furnace_damage()

    def _process_furnace_damage(self):
        for ant in self.ants:
            if self.in_furnace(ant.pos, self.ANT_FURNACE_RANGE):
                if ant.take_damage(1):
                    self._on_ant_killed(ant)

        for hill in self.anthills:
            if self.in_furnace(hill.pos, self.HILL_FURNACE_RANGE):
                self.reward_this_step += 0.5
                self._create_particles(hill.pos, self.COLOR_EMBER, 6)
                if hill.take_damage(1):
                    self.reward_this_step += 10
                    self.score += 100
                    self._create_particles(hill.pos, (120, 80, 40), 30)
                    logger.debug("Anthill at (%d, %d) destroyed", hill.pos.x, hill.pos.y)
                    # sfx: anthill_destroy

    # --- Entities ---

    def _update_anthills(self):
        for hill in self.anthills:
            ant = hill.update(self.np_random, self.WIDTH, self.HEIGHT)
            if ant is not None:
                self.ants.append(ant)

    def _update_ants(self):
        for ant in self.ants:
            ant.update(self.player.pos, self.WIDTH, self.HEIGHT)

    def _check_ant_player_collision(self):
        player_rect = self.player.rect()
        for ant in self.ants:
            if ant.is_dead:
                continue
            if player_rect.colliderect(ant.rect()):
                self.player.take_damage(1)
                self.reward_this_step -= 2
                # The ant spends itself on the bite
                ant.take_damage(ant.hp)
                self._create_particles(ant.pos, Ant.COLOR, 10)
                # sfx: player_hurt

    def _check_sword_damage(self):
        if not self.player.is_attacking:
            return
        for ant in self.ants:
            if ant.is_dead or ant.last_swing_hit == self.player.swing_id:
                continue
            if self.player.attack_hits(ant.pos):
                ant.last_swing_hit = self.player.swing_id
                # sfx: sword_hit
                if ant.take_damage(1):
                    self._on_ant_killed(ant)

    def _on_ant_killed(self, ant):
        self.reward_this_step += 1
        self.score += 10
        self._create_particles(ant.pos, Ant.COLOR, 15)
        # sfx: ant_death

    def _update_particles(self):
        for p in self.particles:
            p.update()
        self.particles = [p for p in self.particles if p.lifetime > 0]

    def _create_particles(self, pos, color, count):
        for _ in range(count):
            angle = self.np_random.uniform(0, 2 * math.pi)
            speed = self.np_random.uniform(1, 4)
            self.particles.append(Particle(
                (pos[0], pos[1]),
                (math.cos(angle) * speed, math.sin(angle) * speed),
                color,
                int(self.np_random.integers(12, 25)),
                int(self.np_random.integers(2, 5)),
            ))

    def _check_termination(self):
        if self.player.is_dead:
            self.game_state = 'lost'
            return True
        if not self.anthills:
            self.game_state = 'won'
            return True
        return self.steps >= self.MAX_STEPS

    # --- Observation / Info ---

    def _get_observation(self):
        self.screen.fill(self.COLOR_BG)
        self._render_game()
        self._render_ui()

        arr = pygame.surfarray.array3d(self.screen)
        return np.transpose(arr, (1, 0, 2)).astype(np.uint8)

    def _get_info(self):
        return {
            "score": self.score,
            "steps": self.steps,
            "player_hp": self.player.hp,
            "bricks_left": self.MAX_BRICKS - len(self.bricks),
            "anthills": len(self.anthills),
            "ants": len(self.ants),
            "furnace_active": self.furnace_active,
            "enclosed_cells": len(self._enclosed_points),
            "time": self.steps / FPS,
        }

    def _render_game(self):
        for x in range(0, self.WIDTH, self.CELL_SIZE):
            pygame.draw.line(self.screen, self.COLOR_GRID, (x, 0), (x, self.HEIGHT))
        for y in range(0, self.HEIGHT, self.CELL_SIZE):
            pygame.draw.line(self.screen, self.COLOR_GRID, (0, y), (self.WIDTH, y))

        # Burning floor inside the ring
        if self.furnace_active:
            half = self.CELL_SIZE // 2
            for i, (cx, cy) in enumerate(self._enclosed_points):
                flicker = int(30 * (0.5 + 0.5 * math.sin(self.steps * 0.3 + i)))
                color = (self.COLOR_EMBER[0], self.COLOR_EMBER[1] + flicker, self.COLOR_EMBER[2])
                pygame.draw.rect(self.screen, color, (int(cx) - half, int(cy) - half, self.CELL_SIZE, self.CELL_SIZE))

        for hill in self.anthills:
            hill.draw(self.screen)
        for brick in self.bricks:
            brick.draw(self.screen, self.steps)
        for ant in self.ants:
            ant.draw(self.screen)
        self.player.draw(self.screen)
        for p in self.particles:
            p.draw(self.screen)

        if self.furnace_active:
            overlay = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
            overlay.fill((255, 51, 51, 38))
            self.screen.blit(overlay, (0, 0))

    def _render_ui(self):
        self._draw_text(f"HP: {self.player.hp}/{Player.MAX_HP}", (16, 24), self.font_ui, self.COLOR_TEXT, align="left")

        seconds = int(self.steps / FPS)
        self._draw_text(f"{seconds // 60:02d}:{seconds % 60:02d}", (self.WIDTH - 16, 24), self.font_ui, self.COLOR_TEXT, align="right")

        remaining = self.MAX_BRICKS - len(self.bricks)
        if remaining == 0:
            color = self.COLOR_EMPTY
            # Blink when out of bricks
            if (self.steps // 15) % 2:
                color = tuple(c // 3 for c in color)
        elif remaining <= 2:
            color = self.COLOR_WARN
        else:
            color = self.COLOR_TEXT
        self._draw_text(f"Bricks: {remaining}/{self.MAX_BRICKS}", (self.WIDTH - 16, self.HEIGHT - 48), self.font_ui, color, align="right")

        if self.brick_cooldown > 0:
            text = f"Cooldown: {self.brick_cooldown / FPS:.1f}s"
            self._draw_text(text, (self.WIDTH - 16, self.HEIGHT - 22), self.font_small, self.COLOR_TEXT_DIM, align="right")

        if self.tutorial_timer > 0:
            self._render_tutorial()

        if self.game_over:
            overlay = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
            overlay.fill((0, 0, 0, 160))
            self.screen.blit(overlay, (0, 0))
            seconds = int(self.steps / FPS)
            if self.game_state == 'won':
                self._draw_text("VICTORY!", (self.WIDTH // 2, self.HEIGHT // 2 - 40), self.font_large, (0, 255, 0))
                self._draw_text(f"All anthills destroyed!  Time: {seconds // 60:02d}:{seconds % 60:02d}",
                                (self.WIDTH // 2, self.HEIGHT // 2 + 10), self.font_ui, self.COLOR_TEXT)
            elif self.game_state == 'lost':
                self._draw_text("DEFEAT!", (self.WIDTH // 2, self.HEIGHT // 2 - 40), self.font_large, (255, 0, 0))
                self._draw_text("You were overwhelmed...", (self.WIDTH // 2, self.HEIGHT // 2 + 10), self.font_ui, self.COLOR_TEXT)
            else:
                self._draw_text("TIME UP", (self.WIDTH // 2, self.HEIGHT // 2 - 40), self.font_large, self.COLOR_WARN)
            self._draw_text(f"Score: {self.score}", (self.WIDTH // 2, self.HEIGHT // 2 + 50), self.font_ui, self.COLOR_TEXT)

    def _render_tutorial(self):
        overlay = pygame.Surface((self.WIDTH, self.HEIGHT), pygame.SRCALPHA)
        overlay.fill((0, 0, 0, 178))
        self.screen.blit(overlay, (0, 0))
        lines = [
            "WASD / Arrows - Move",
            "J / Space - Attack",
            "K / Shift - Place brick",
            "",
            "Seal every anthill inside a ring of bricks!",
            "(press any key to continue)",
        ]
        line_height = 40
        start_y = self.HEIGHT // 2 - len(lines) * line_height // 2
        for i, line in enumerate(lines):
            if line:
                self._draw_text(line, (self.WIDTH // 2, start_y + i * line_height), self.font_ui, self.COLOR_TEXT)

    def _draw_text(self, text, pos, font, color, align="center"):
        text_surface = font.render(text, True, color)
        text_rect = text_surface.get_rect()
        if align == "center":
            text_rect.center = pos
        elif align == "left":
            text_rect.midleft = pos
        elif align == "right":
            text_rect.midright = pos
        self.screen.blit(text_surface, text_rect)

    def close(self):
        pygame.quit()

    def validate_implementation(self):
        # Run against throwaway settings so validation never dismisses the real tutorial
        settings = self.settings
        self.settings = Settings(difficulty=settings.difficulty, tutorial_shown=settings.tutorial_shown)

        assert self.action_space.shape == (3,)
        assert self.action_space.nvec.tolist() == [5, 2, 2]

        test_obs = self._get_observation()
        assert test_obs.shape == (self.HEIGHT, self.WIDTH, 3)
        assert test_obs.dtype == np.uint8

        obs, info = self.reset()
        assert obs.shape == (self.HEIGHT, self.WIDTH, 3)
        assert isinstance(info, dict)

        test_action = self.action_space.sample()
        obs, reward, term, trunc, info = self.step(test_action)
        assert obs.shape == (self.HEIGHT, self.WIDTH, 3)
        assert isinstance(reward, (int, float))
        assert isinstance(term, bool)
        assert not trunc
        assert isinstance(info, dict)

        self.settings = settings
        self.reset()
        print("✓ Implementation validated successfully")


def main(argv=None):
    parser = argparse.ArgumentParser(description=GameEnv.game_description)
    parser.add_argument("--difficulty", choices=sorted(DIFFICULTY_CONFIG), default=None,
                        help="Set (and remember) the difficulty")
    parser.add_argument("--settings", default=DEFAULT_SETTINGS_PATH,
                        help="Path of the settings file (default: %(default)s)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # A real window is needed for manual play
    if os.environ.get("SDL_VIDEODRIVER") == "dummy":
        del os.environ["SDL_VIDEODRIVER"]

    settings = Settings.load(args.settings)
    if args.difficulty is not None:
        settings.difficulty = args.difficulty
        settings.save()

    env = GameEnv(settings=settings)
    obs, info = env.reset()

    pygame.display.set_caption("Ring of Cinders")
    screen_display = pygame.display.set_mode((env.WIDTH, env.HEIGHT))
    clock = pygame.time.Clock()

    running = True
    paused = False
    total_reward = 0
    while running:
        mouse_attack = 0
        mouse_brick = 0
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE and not env.game_over:
                    paused = not paused
                elif event.key == pygame.K_r and env.game_over:
                    obs, info = env.reset()
                    total_reward = 0
            elif event.type == pygame.MOUSEBUTTONDOWN:
                if event.button == 1:
                    mouse_attack = 1
                elif event.button == 3:
                    mouse_brick = 1

        if not paused:
            keys = pygame.key.get_pressed()
            movement = 0
            if keys[pygame.K_UP] or keys[pygame.K_w]:
                movement = 1
            elif keys[pygame.K_DOWN] or keys[pygame.K_s]:
                movement = 2
            elif keys[pygame.K_LEFT] or keys[pygame.K_a]:
                movement = 3
            elif keys[pygame.K_RIGHT] or keys[pygame.K_d]:
                movement = 4
            space_held = 1 if keys[pygame.K_SPACE] or keys[pygame.K_j] or mouse_attack else 0
            shift_held = 1 if keys[pygame.K_LSHIFT] or keys[pygame.K_RSHIFT] or keys[pygame.K_k] or mouse_brick else 0

            obs, reward, terminated, truncated, info = env.step([movement, space_held, shift_held])
            total_reward += reward

        surf = pygame.surfarray.make_surface(np.transpose(obs, (1, 0, 2)))
        screen_display.blit(surf, (0, 0))
        if paused:
            env._draw_text("PAUSED", (env.WIDTH // 2, env.HEIGHT // 2), env.font_large, env.COLOR_TEXT)
            screen_display.blit(env.screen, (0, 0))
        pygame.display.flip()
        clock.tick(FPS)

    print(f"Final Score: {info['score']}, Total Reward: {total_reward:.2f}")
    env.close()


if __name__ == '__main__':
    main()
