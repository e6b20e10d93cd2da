""" Classes and methods implemented here implement the request/response
    aspects of the client/daemon API, using ZeroMQ DEALER and ROUTER sockets.

    Every request is immediately acknowledged by the daemon with an ACK;
    this is how a client distinguishes a daemon that is offline (no ACK,
    :class:`coordkv.errors.Unavailable`) from one that is merely slow to
    respond (ACK but no REP before the deadline,
    :class:`coordkv.errors.DeadlineExceeded`).
"""

import atexit
import logging
import queue
import sys
import threading
import time
import traceback
import zmq

from .. import errors
from . import message

logger = logging.getLogger(__name__)

minimum_port = 10079
maximum_port = 13679
zmq_context = zmq.Context()


class Client:
    """ Issue requests via a ZeroMQ DEALER socket and receive responses.
        Maintains a persistent connection to a single daemon; the *address*
        and *port* number must be specified.

        The socket is only ever touched by the background thread; callers
        hand off outbound requests through a queue and wake the background
        thread with an inproc signal.
    """

    ack_timeout = 0.5

    def __init__(self, address, port):

        port = int(port)
        self.port = port
        self.address = address

        server = "tcp://%s:%d" % (address, port)
        identity = "request.Client.%d" % (id(self))

        self.socket = zmq_context.socket(zmq.DEALER)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.identity = identity.encode()
        self.socket.connect(server)

        internal = "inproc://request.Client:signal:%d" % (id(self))
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)
        self._signal_lock = threading.Lock()

        self._outbox = queue.SimpleQueue()

        self.pending = dict()
        self.pending_thread = threading.Thread(target=self.run)
        self.pending_thread.daemon = True
        self.pending_thread.start()


    def _rep_incoming(self, parts):
        """ A client only receives two types of messages from the remote side:
            an ACK, or a REP. The response is handed back to the relevant
            :class:`message.Request` instance for any further handling by the
            original caller.
        """

        try:
            response = message.Message.from_parts(parts)
        except ValueError:
            logger.warning("discarding malformed response: %r", parts)
            return

        try:
            pending = self.pending[response.id]
        except KeyError:
            # The original caller gave up on this request, no further
            # processing is possible.
            return

        if response.type == 'ACK':
            pending._complete_ack()
            return

        pending._complete(response)
        self.pending.pop(response.id, None)


    def _req_outgoing(self):
        """ Clear one signal and send one request. """

        self._signal_rx.recv(flags=zmq.NOBLOCK)
        request = self._outbox.get(block=False)

        self.pending[request.id] = request
        self.socket.send_multipart(tuple(request))


    def run(self):

        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        while True:
            sockets = poller.poll(10000)
            for active, flag in sockets:
                if active == self._signal_rx:
                    self._req_outgoing()
                elif active == self.socket:
                    parts = tuple(self.socket.recv_multipart())
                    self._rep_incoming(parts)


    def forget(self, request):
        """ Discard any record of *request*; a late response will be ignored.
        """

        self.pending.pop(request.id, None)


    def send(self, request, timeout):
        """ A *request* is a fully populated :class:`message.Request`
            instance. This method blocks until the request is acknowledged,
            waiting no longer than *timeout* seconds or the acknowledgement
            timeout, whichever is shorter; the caller is free to decide how
            long to wait for the full response.
        """

        self._outbox.put(request)

        with self._signal_lock:
            self._signal_tx.send(b'')

        wait = min(timeout, self.ack_timeout)
        ack = request.wait_ack(wait)

        if ack == False:
            self.forget(request)

            if timeout <= self.ack_timeout:
                raise errors.DeadlineExceeded("%s: no response in %.2fs" % (request.type, timeout))

            raise errors.Unavailable("%s @ %s:%d: no acknowledgement in %.2fs" % (request.type, self.address, self.port, wait))


# end of class Client



class Server:
    """ Receive requests via a ZeroMQ ROUTER socket, and respond to them. The
        default behavior is to listen on every interface, on the first
        available port in the default range. The *avoid* set enumerates port
        numbers that should not be automatically assigned; it is ignored if
        a fixed *port* is specified.

        :ivar hostname: The hostname on which this server can be contacted.
        :ivar port: The port on which this server is listening for connections.
    """

    worker_count = 16

    # Request types that may block until a deadline. Each one is handled on
    # a thread of its own, so that waiters never occupy the shared workers
    # needed to release them.

    blocking = set()

    def __init__(self, hostname=None, port=None, avoid=None):

        if avoid is None:
            avoid = set()

        if hostname is None:
            listen = '*'
            hostname = 'localhost'
        else:
            listen = hostname

        self.hostname = hostname
        self.socket = zmq_context.socket(zmq.ROUTER)
        self.socket.setsockopt(zmq.LINGER, 0)

        # If the port is set, use it; otherwise, look for the first available
        # port within the default range.

        if port is None:
            minimum = minimum_port
            maximum = maximum_port
        else:
            port = int(port)
            minimum = port
            maximum = port

        trial = minimum
        while trial <= maximum:
            if port is None and trial in avoid:
                trial += 1
                continue

            listen_address = 'tcp://%s:%d' % (listen, trial)
            try:
                self.socket.bind(listen_address)
            except zmq.error.ZMQError:
                # Assume this port is in use.
                trial += 1
            else:
                break

        if trial > maximum:
            self.socket.close()

            if port is None:
                error = "no ports available in range %d:%d" % (minimum, maximum)
            else:
                error = 'port already in use: ' + str(port)
            raise errors.TransportError(error)

        self.port = trial

        # Responses are produced by the worker threads, but only the
        # background thread touches the ROUTER socket.

        internal = "inproc://request.Server:signal:%d" % (id(self))
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)
        self._signal_lock = threading.Lock()

        self._responses = queue.SimpleQueue()
        self.queue = queue.SimpleQueue()

        self.shutdown = False
        self.thread = threading.Thread(target=self.run)
        self.thread.daemon = True
        self.thread.start()

        # Multiple worker threads allow slow requests to proceed in parallel
        # without jamming up the processing of subsequent requests.

        self.workers = list()
        for thread_number in range(self.worker_count):
            thread = threading.Thread(target=self._worker_main)
            thread.daemon = True
            thread.start()
            self.workers.append(thread)


    def req_ack(self, ident, request_id):
        """ Acknowledge the incoming request. This happens in the background
            thread as soon as the request arrives, regardless of how long the
            request will take to handle.
        """

        ack = message.Message('ACK', id=request_id)
        parts = (ident,) + tuple(ack)
        self.socket.send_multipart(parts)


    def req_handler(self, request):
        """ Subclasses override this method to handle a
            :class:`message.Request`; the return value is a
            :class:`message.Payload` to be sent back in the REP. Any
            exception raised is packaged up and returned to the client
            as an error.
        """

        raise NotImplementedError('unhandled request type: ' + request.type)


    def req_incoming(self, ident, parts):
        """ All inbound requests are filtered through this method. It will
            parse the request and hand it off to :func:`req_handler` for
            further processing. Error handling is managed here.
        """

        request_id = parts[1]

        try:
            request = message.Request.from_parts(parts)
        except ValueError:
            e_class, e_instance, e_traceback = sys.exc_info()
            request = None
            payload = None
            error = errors.to_remote(errors.InvalidArgument(str(e_instance)))
        else:
            payload = None
            error = None

        if request is not None:
            try:
                payload = self.req_handler(request)
            except errors.CoordError:
                e_class, e_instance, e_traceback = sys.exc_info()
                logger.debug("%s failed: %s: %s", request.type, e_class.__name__, e_instance)
                error = errors.to_remote(e_instance)
            except Exception:
                e_class, e_instance, e_traceback = sys.exc_info()
                logger.exception("%s handler raised an exception", request.type)
                error = errors.to_remote(e_instance, traceback.format_exc())

        if payload is None:
            payload = message.Payload()

        if error is not None:
            payload.error = error

        response = message.Message('REP', payload, request_id)
        self.send(ident, response)


    def send(self, ident, response):
        """ Queue a response for the background thread to transmit. """

        self._responses.put((ident, response))

        with self._signal_lock:
            self._signal_tx.send(b'')


    def _rep_outgoing(self):

        self._signal_rx.recv(flags=zmq.NOBLOCK)
        ident, response = self._responses.get(block=False)
        parts = (ident,) + tuple(response)
        self.socket.send_multipart(parts)


    def run(self):

        poller = zmq.Poller()
        poller.register(self.socket, zmq.POLLIN)
        poller.register(self._signal_rx, zmq.POLLIN)

        while self.shutdown == False:
            sockets = poller.poll(100)
            for active, flag in sockets:
                if active == self._signal_rx:
                    self._rep_outgoing()
                elif active == self.socket:
                    parts = self.socket.recv_multipart()
                    ident = parts[0]
                    parts = tuple(parts[1:])

                    if len(parts) != 4:
                        logger.warning("discarding malformed request: %r", parts)
                        continue

                    self.req_ack(ident, parts[1])

                    if parts[2].decode(errors='replace') in self.blocking:
                        self._req_blocking(ident, parts)
                    else:
                        self.queue.put((ident, parts))

        self.socket.close()
        self._signal_rx.close()
        self._signal_tx.close()


    def stop(self):
        """ Stop accepting requests. The listening port is released once the
            background thread notices the shutdown flag.
        """

        self.shutdown = True

        for thread in self.workers:
            self.queue.put(None)

        self.thread.join()


    def _req_blocking(self, ident, parts):
        """ Hand a potentially blocking request to a dedicated thread. The
            thread ends when the request completes or its deadline passes.
        """

        thread = threading.Thread(target=self._blocking_main, args=(ident, parts))
        thread.daemon = True
        thread.start()


    def _blocking_main(self, ident, parts):

        try:
            self.req_incoming(ident, parts)
        except Exception:
            logger.exception('unexpected failure handling request')


    def _worker_main(self):
        """ This is the 'main' method for the worker threads responsible for
            handling incoming requests: receive a request, and feed it to
            :func:`req_incoming` for processing.
        """

        while self.shutdown == False:

            try:
                dequeued = self.queue.get(timeout=300)
            except queue.Empty:
                continue

            if dequeued is None:
                continue

            try:
                self.req_incoming(*dequeued)
            except Exception:
                logger.exception('unexpected failure handling request')


# end of class Server



client_connections = dict()
client_connections_lock = threading.Lock()

def client(address, port):
    """ Factory function for a :class:`Client` instance. Use of this method is
        encouraged to streamline re-use of established connections.
    """

    key = (address, int(port))

    with client_connections_lock:
        try:
            instance = client_connections[key]
        except KeyError:
            instance = Client(address, port)
            client_connections[key] = instance

    return instance



def send(address, port, request, timeout):
    """ Use :func:`client` to connect to the specified *address* and *port*,
        send the specified :class:`message.Request` instance, and block until
        the response arrives or *timeout* seconds elapse. The response
        :class:`message.Payload` is returned; an error carried in the payload
        is not interpreted here.
    """

    if timeout is None or timeout <= 0:
        raise errors.DeadlineExceeded("%s: deadline already expired" % (request.type))

    begin = time.monotonic()

    connection = client(address, port)
    connection.send(request, timeout)

    remaining = timeout - (time.monotonic() - begin)

    if remaining > 0:
        response = request.wait(remaining)
    else:
        response = None

    if response is None:
        connection.forget(request)
        raise errors.DeadlineExceeded("%s: no response in %.2fs" % (request.type, timeout))

    payload = response.payload

    if payload is None:
        payload = message.Payload()

    return payload


def shutdown():
    client_connections.clear()


atexit.register(shutdown)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
