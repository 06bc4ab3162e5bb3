import asyncio
import streamlit as st

from auth import AuthContext, User
from config import load_settings
from localization import translator
from logger import setup_logger
from weekly_service import WeeklyExercisesView, build_backend, build_user_directory

_ = translator.gettext


class WeeklyApp:
    """Streamlit page rendering the weekly exercise checklist."""

    def __init__(
        self, db_path: str = "workout.db", yaml_path: str = "settings.yaml"
    ) -> None:
        self.settings = load_settings(yaml_path)
        self.settings.db_path = db_path
        setup_logger(self.settings.log_level, self.settings.log_file)
        translator.set_language(self.settings.language)
        self.users = build_user_directory(self.settings)
        st.set_page_config(page_title=_("Weekly Exercises"), layout="centered")
        self._state_init()

    def _state_init(self) -> None:
        if "auth" not in st.session_state:
            st.session_state.auth = AuthContext()
        if "weekly_view" not in st.session_state:
            view = WeeklyExercisesView(
                build_backend(self.settings), st.session_state.auth
            )
            with st.spinner(_("Loading...")):
                asyncio.run(view.mount())
            st.session_state.weekly_view = view
        self.auth: AuthContext = st.session_state.auth
        self.view: WeeklyExercisesView = st.session_state.weekly_view

    def _user_selector(self) -> None:
        users = {email: uid for uid, email in self.users.fetch_users()}
        anonymous = _("Not signed in")
        options = [anonymous] + list(users)
        current = self.auth.user.email if self.auth.user else anonymous
        choice = st.sidebar.selectbox(
            _("Signed in as"),
            options,
            index=options.index(current) if current in options else 0,
            key="user_select",
        )
        if choice == current:
            return
        # subscribers reload the view synchronously here
        with st.spinner(_("Loading...")):
            if choice == anonymous:
                self.auth.sign_out()
            else:
                self.auth.sign_in(User(users[choice], choice))

    def _week_nav(self) -> None:
        prev_col, label_col, next_col = st.columns([1, 4, 1])
        if prev_col.button("<", key="prev_week", help=_("Previous week")):
            with st.spinner(_("Loading...")):
                asyncio.run(self.view.prev_week())
        if next_col.button(">", key="next_week", help=_("Next week")):
            with st.spinner(_("Loading...")):
                asyncio.run(self.view.next_week())
        label_col.markdown(f"**{self.view.week.label()}**")

    def _checklist(self) -> None:
        checklist = self.view.checklist()
        if not checklist:
            st.info(_("No exercises in the catalog"))
            return
        for exercise, scheduled in checklist:
            icon = (
                self.settings.scheduled_icon
                if scheduled
                else self.settings.unscheduled_icon
            )
            st.markdown(f"{icon} {exercise.name}")

    def run(self) -> None:
        self._user_selector()
        if self.view.loading:
            st.info(_("Loading..."))
            return
        st.header(_("Weekly Exercises"))
        self._week_nav()
        self._checklist()


if __name__ == "__main__":
    import os

    db_path = os.environ.get("DB_PATH", "workout.db")
    yaml_path = os.environ.get("YAML_PATH", "settings.yaml")
    WeeklyApp(db_path=db_path, yaml_path=yaml_path).run()
