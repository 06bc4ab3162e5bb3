class Translator:
    def __init__(self) -> None:
        self.language = "en"
        self.translations = {
            "en": {},
            "es": {
                "Weekly Exercises": "Ejercicios Semanales",
                "Previous week": "Semana anterior",
                "Next week": "Semana siguiente",
                "Signed in as": "Sesión iniciada como",
                "Not signed in": "Sin sesión",
                "No exercises in the catalog": "No hay ejercicios en el catálogo",
                "Loading...": "Cargando...",
            },
        }

    def set_language(self, lang: str) -> None:
        self.language = lang

    def gettext(self, key: str) -> str:
        return self.translations.get(self.language, {}).get(key, key)

translator = Translator()
