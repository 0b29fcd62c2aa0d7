from scorekeeper import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Dev server; rooms and push hints share the SocketIO event loop
    socketio.run(
        app,
        host=app.config['HOST'],
        port=app.config['PORT'],
        debug=app.config['DEBUG'],
    )
