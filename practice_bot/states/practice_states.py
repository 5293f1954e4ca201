from aiogram.fsm.state import StatesGroup, State


class PracticeFlow(StatesGroup):
    choosing_mode = State()
    choosing_time_limit = State()
    choosing_question_count = State()
    starting_session = State()
    in_session = State()
    viewing_results = State()
