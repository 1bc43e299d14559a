from tablecast import create_app, db
from tablecast.models import Fixture, Standing, UserProfile

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "UserProfile": UserProfile,
        "Standing": Standing,
        "Fixture": Fixture,
    }


if __name__ == "__main__":
    # The reloader would start a second scheduler in the child process
    app.run(host="0.0.0.0", port=5000, debug=True, use_reloader=False)
