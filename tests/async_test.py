import asyncio
from signal import SIGINT

import httpx
from pytest import mark, raises

from range_reader.async_utils import AsyncFetcher
from range_reader.errors import MissingResourceInfoError

from .data import EXAMPLE_FILES, EXAMPLE_PNG_URL, EXAMPLE_URL, EXAMPLE_ZIP_URL
from .share import RangeServer, make_client

THREE_URLS = [EXAMPLE_URL, EXAMPLE_PNG_URL, EXAMPLE_ZIP_URL]

default_kwargs = dict(show_progress_bar=False)


class CallbackMutatedClass:
    values = []

    @classmethod
    def reset(cls):
        """
        Reset the class attribute where tests store the URLs they called back from
        """
        cls.values = []


async def url_callback_func(fetcher, reader, url):
    """
    Async function which puts the URL onto the storage class's list of values
    """
    return CallbackMutatedClass.values.append(url)


async def read_start_callback_func(fetcher, reader, url):
    """
    Async function which reads the first 8 bytes and stores them with the URL
    """
    buf = bytearray(8)
    n = await reader.read(buf)
    return CallbackMutatedClass.values.append((url, bytes(buf[:n])))


async def sigint_callback_func(fetcher, reader, url):
    """
    Mimic the act of sending the signal interrupt by raising it in a callback
    """
    await url_callback_func(fetcher, reader, url)
    loop = asyncio.get_running_loop()
    fetcher.immediate_exit(signal_enum=SIGINT, loop=loop)


@mark.parametrize("cb", [None, url_callback_func])
@mark.parametrize("verbose", [True, False])
@mark.parametrize("error_msg", ["The list of URLs to fetch cannot be empty"])
@mark.parametrize("urls", [([]), (THREE_URLS)])
def test_fetcher(urls, error_msg, verbose, cb):
    """
    Fetch lists of 0 or 3 URLs asynchronously, with/out a callback, verbosely/quietly.
    """
    kwargs = dict(**default_kwargs, callback=cb, urls=urls, verbose=verbose)
    if urls == []:
        with raises(ValueError, match=error_msg):
            fetched = AsyncFetcher(**kwargs)
    else:
        fetched = AsyncFetcher(**kwargs, client=make_client())
        fetched.make_calls()
        expected_values = set() if cb is None else set(urls)
        stored_urls = getattr(CallbackMutatedClass, "values")
        assert set(stored_urls) == set(expected_values)
        assert fetched.filtered_url_list == []
        CallbackMutatedClass.reset()


@mark.parametrize("avoid_head", [True, False])
def test_fetcher_reads(avoid_head):
    """
    Read the start of each of 3 URLs, passing reader options through the fetcher.
    """
    server = RangeServer()
    kwargs = dict(**default_kwargs, callback=read_start_callback_func, urls=THREE_URLS)
    fetched = AsyncFetcher(
        **kwargs,
        client=make_client(server),
        avoid_head=avoid_head,
        minimum_chunk_size=8,
    )
    fetched.make_calls()
    stored = dict(getattr(CallbackMutatedClass, "values"))
    assert stored == {url: EXAMPLE_FILES[url][:8] for url in THREE_URLS}
    methods = {r.method for r in server.requests}
    assert methods == ({"GET"} if avoid_head else {"HEAD", "GET"})
    CallbackMutatedClass.reset()


def test_fetcher_skips_completed_rows():
    kwargs = dict(**default_kwargs, callback=url_callback_func, urls=THREE_URLS)
    fetched = AsyncFetcher(**kwargs, client=make_client())
    fetched.complete_row(row_index=0)
    assert fetched.filtered_url_list == THREE_URLS[1:]
    fetched.make_calls()
    assert set(getattr(CallbackMutatedClass, "values")) == set(THREE_URLS[1:])
    CallbackMutatedClass.reset()
    fetched.make_calls()  # nothing left to fetch
    assert getattr(CallbackMutatedClass, "values") == []


def test_fetcher_closed_client():
    client = make_client()
    asyncio.run(client.aclose())
    fetched = AsyncFetcher(**default_kwargs, urls=THREE_URLS, client=client)
    with raises(ValueError, match="Cannot use a closed client"):
        fetched.make_calls()


@mark.parametrize("cb", [sigint_callback_func])
@mark.parametrize("urls", [(THREE_URLS)])
def test_fetcher_sigint(urls, cb):
    """
    Cannot emulate passing the SIGINT from this test so can't catch it, but can
    check that the loop is stopped at the first callback (and the readers aborted)
    when ``immediate_exit`` is called.
    """
    kwargs = dict(**default_kwargs, callback=cb, urls=urls, verbose=False)
    fetched = AsyncFetcher(**kwargs, client=make_client())
    fetched.make_calls()
    stored_urls = getattr(CallbackMutatedClass, "values")
    assert len(stored_urls) == 1
    assert set(stored_urls) < set(urls)
    assert fetched.signal.aborted
    assert fetched.signal.reason == "Received SIGINT"
    CallbackMutatedClass.reset()


def test_fetcher_results_and_failures():
    """
    A URL that cannot be opened is recorded as a failure without stopping the
    others, and is not retried.
    """
    missing_url = EXAMPLE_URL + ".missing"
    urls = [EXAMPLE_URL, missing_url, EXAMPLE_ZIP_URL]
    kwargs = dict(**default_kwargs, callback=read_start_callback_func, urls=urls)
    fetched = AsyncFetcher(**kwargs, client=make_client())
    fetched.make_calls()
    assert set(fetched.results) == {EXAMPLE_URL, EXAMPLE_ZIP_URL}
    assert list(fetched.failures) == [missing_url]
    assert isinstance(fetched.failures[missing_url], httpx.HTTPStatusError)
    assert fetched.filtered_url_list == []
    assert repr(fetched) == "AsyncFetcher ⠶ 3/3 URLs completed"
    CallbackMutatedClass.reset()


def test_fetcher_records_unknown_size():
    """
    A server answering HEAD without a size for one URL does not stop the others.
    """
    server = RangeServer(sizeless={EXAMPLE_URL})
    urls = [EXAMPLE_URL, EXAMPLE_ZIP_URL]
    kwargs = dict(**default_kwargs, callback=read_start_callback_func, urls=urls)
    fetched = AsyncFetcher(**kwargs, client=make_client(server))
    fetched.make_calls()
    assert list(fetched.failures) == [EXAMPLE_URL]
    assert isinstance(fetched.failures[EXAMPLE_URL], MissingResourceInfoError)
    assert fetched.results == {EXAMPLE_ZIP_URL: None}
    stored = dict(getattr(CallbackMutatedClass, "values"))
    assert stored == {EXAMPLE_ZIP_URL: EXAMPLE_FILES[EXAMPLE_ZIP_URL][:8]}
    assert fetched.filtered_url_list == []
    CallbackMutatedClass.reset()


async def abort_one_callback_func(fetcher, reader, url):
    """
    Abort the reader on ``EXAMPLE_URL``, and read from every other reader only
    once that abort has happened.
    """
    if url == EXAMPLE_URL:
        reader.abort()
        return "aborted"
    for _ in range(500):
        if EXAMPLE_URL in fetcher.results:
            break
        await asyncio.sleep(0.01)
    buf = bytearray(8)
    await reader.read(buf, position=50)
    return bytes(buf)


def test_fetcher_abort_one_reader():
    kwargs = dict(**default_kwargs, callback=abort_one_callback_func, urls=THREE_URLS)
    fetched = AsyncFetcher(**kwargs, client=make_client())
    fetched.make_calls()
    assert fetched.results == {
        EXAMPLE_URL: "aborted",
        EXAMPLE_PNG_URL: EXAMPLE_FILES[EXAMPLE_PNG_URL][50:58],
        EXAMPLE_ZIP_URL: EXAMPLE_FILES[EXAMPLE_ZIP_URL][50:58],
    }
    assert not fetched.signal.aborted
    assert fetched.failures == {}
