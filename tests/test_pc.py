from pc import Direction, ProgramCounter


def test_initial_state():
    pc = ProgramCounter()
    assert pc.position == (0, 0)
    assert pc.direction is Direction.RIGHT


def test_left_from_origin_wraps_to_last_column():
    pc = ProgramCounter(y=7)
    pc.set_direction(Direction.LEFT)
    pc.advance()
    assert pc.position == (79, 7)


def test_up_from_top_wraps_to_last_row():
    pc = ProgramCounter(x=12)
    pc.set_direction(Direction.UP)
    pc.advance()
    assert pc.position == (12, 24)


def test_right_and_down_edges_wrap_to_zero():
    pc = ProgramCounter(x=79, y=3)
    pc.advance()
    assert pc.position == (0, 3)
    pc = ProgramCounter(x=5, y=24)
    pc.set_direction(Direction.DOWN)
    pc.advance()
    assert pc.position == (5, 0)


def test_both_axes_checked_on_every_move():
    # Out-of-range on an axis that did not move still wraps.
    pc = ProgramCounter(x=80, y=-1)
    pc.set_direction(Direction.RIGHT)
    pc.advance()
    assert pc.position == (0, 24)


def test_reset():
    pc = ProgramCounter(x=3, y=4)
    pc.set_direction(Direction.UP)
    pc.reset()
    assert pc.position == (0, 0)
    assert pc.direction is Direction.RIGHT
