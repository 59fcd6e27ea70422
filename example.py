import logging

import tinyrest

app = tinyrest.App()


class UsersController(tinyrest.Controller):
    response_class = tinyrest.JsonResponse

    def before_filter(self, action, request, response):
        self.verbose = request.query_vars.get("verbose") == "1"
        return True

    def index(self, request, response):
        return ["ann", "bob"]

    def show(self, request, response):
        user = {"id": request.vars["id"]}
        if self.verbose:
            user["action"] = str(tinyrest.Action.SHOW)
        return user


class PostsController(tinyrest.Controller):
    def index(self, request, response):
        return f"posts by user {request.vars['user_id']}"


app.resources(UsersController)
app.resources(PostsController, "UsersController")


@app.route("/")
def home(request: tinyrest.Request, response: tinyrest.StringResponse):
    return "Hello World"


@app.route("/static/*", "GET")
def static(request: tinyrest.Request, response: tinyrest.StringResponse):
    return f"would serve {request.path}"


def main():
    """Program entry point."""
    logging.basicConfig(level=logging.DEBUG)
    for route in app.routes:
        print(route.method or "*", route.pattern)
    app.serve_forever()


if __name__ == "__main__":
    main()
