import pygame

from ring_of_cinders.entities import FACING_VECTORS, Player

# facing -> movement action index
FACING_ACTIONS = {'up': 1, 'down': 2, 'left': 3, 'right': 4}


def _ring_cells(env, hill):
    # Four bricks on the orthogonal neighbours are enough to seal the hill's own cell
    detector = env.enclosure_detector
    hx, hy = detector.world_to_grid(hill.pos.x, hill.pos.y)
    occupied = {detector.world_to_grid(b.pos.x, b.pos.y) for b in env.bricks}
    cells = []
    for dx, dy in FACING_VECTORS.values():
        cell = (hx + dx, hy + dy)
        if detector.in_bounds(*cell) and cell not in occupied:
            cells.append(cell)
    return cells


def _stand_point(env, cell):
    """Pick a spot from which a dropped brick lands in ``cell``, with the facing to use."""
    cx, cy = env.enclosure_detector.grid_to_world(*cell)
    half = Player.SIZE / 2
    blockers = [b.rect() for b in env.bricks] + [h.rect() for h in env.anthills]
    options = []
    for facing, (fx, fy) in FACING_VECTORS.items():
        x = cx - fx * env.BRICK_PLACEMENT_DISTANCE
        y = cy - fy * env.BRICK_PLACEMENT_DISTANCE
        if not (half <= x <= env.WIDTH - half and half <= y <= env.HEIGHT - half):
            continue
        if env.player.rect(pygame.Vector2(x, y)).collidelist(blockers) != -1:
            continue
        options.append((env.player.pos.distance_to((x, y)), (x, y), facing))
    if not options:
        return None
    _, point, facing = min(options)
    return point, facing


def _blocked(env, facing):
    fx, fy = FACING_VECTORS[facing]
    player = env.player
    current = player.rect()
    moved = player.rect(player.pos + pygame.Vector2(fx, fy) * Player.SPEED)
    for rect in [b.rect() for b in env.bricks] + [h.rect() for h in env.anthills]:
        if moved.colliderect(rect) and not current.colliderect(rect):
            return True
    return False


def _move_towards(env, target):
    pos = env.player.pos
    dx = target[0] - pos.x
    dy = target[1] - pos.y
    tolerance = Player.SPEED / 2
    if abs(dx) <= tolerance and abs(dy) <= tolerance:
        return 0

    horizontal = 'right' if dx > 0 else 'left'
    vertical = 'down' if dy > 0 else 'up'
    if abs(dx) >= abs(dy):
        preferred = [horizontal]
        if abs(dy) > tolerance:
            preferred.append(vertical)
        sidesteps = ['up', 'down']
    else:
        preferred = [vertical]
        if abs(dx) > tolerance:
            preferred.append(horizontal)
        sidesteps = ['left', 'right']

    for facing in preferred + sidesteps:
        if not _blocked(env, facing):
            return FACING_ACTIONS[facing]
    return FACING_ACTIONS[preferred[0]]


def policy(env):
    # Strategy: swing at any ant that gets close (walking into it so the arc
    # faces it), otherwise seal the nearest unburnt anthill inside a plus of
    # four bricks. For each missing brick, walk to a spot 50px from the cell,
    # face it and drop the brick once the drop point lands in that cell.
    player = env.player
    swing = 1 if env.last_space_state == 0 else 0

    close_ants = [a for a in env.ants if player.pos.distance_to(a.pos) < Player.ATTACK_RADIUS * 0.8]
    if close_ants:
        ant = min(close_ants, key=lambda a: player.pos.distance_to(a.pos))
        return [_move_towards(env, ant.pos), swing, 0]

    bricks_left = env.MAX_BRICKS - len(env.bricks)
    hills = [h for h in env.anthills if not env.in_furnace(h.pos, env.HILL_FURNACE_RANGE)]
    hills.sort(key=lambda h: player.pos.distance_to(h.pos))

    for hill in hills:
        cells = _ring_cells(env, hill)
        if not cells or len(cells) > bricks_left:
            continue

        drop_cell = env.enclosure_detector.world_to_grid(*env.brick_drop_position())
        if drop_cell in cells:
            if env.brick_cooldown <= 0 and env.last_shift_state == 0:
                return [0, 0, 1]
            return [0, 0, 0]

        targets = [t for t in (_stand_point(env, c) for c in cells) if t is not None]
        if not targets:
            continue
        point, facing = min(targets, key=lambda t: player.pos.distance_to(t[0]))
        movement = _move_towards(env, point)
        if movement == 0:
            movement = FACING_ACTIONS[facing]
        return [movement, 0, 0]

    # Nothing left to build: hunt the nearest ant
    if env.ants:
        ant = min(env.ants, key=lambda a: player.pos.distance_to(a.pos))
        return [_move_towards(env, ant.pos), 0, 0]
    return [0, 0, 0]
