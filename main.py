import eventlet
eventlet.monkey_patch()

import logging

from server import app, socketio


def main():
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    socketio.run(app, host=app.config.get('HOST', '127.0.0.1'),
                 port=app.config.get('PORT', 5000), debug=app.config.get('DEBUG', False))


if __name__ == '__main__':
    main()
