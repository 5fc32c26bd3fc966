"""
Tests for crawler/job.py: traversal order, matching and the status machine.
"""

import asyncio

from conftest import FakeClock, FakeFetcher

from keyword_crawler.crawler.job import CrawlJob, JobSnapshot, JobStatus
from keyword_crawler.utils.monitoring import ServiceMetrics

BASE = 'http://site.test'


def make_job(pages, keyword='needle', timeout=60, clock=None, step=0.0, metrics=None):
    clock = clock or FakeClock()
    fetcher = FakeFetcher(pages, clock=clock, step=step)
    job = CrawlJob('abcd1234', keyword, BASE, timeout, fetcher, metrics=metrics, clock=clock)
    return job, fetcher


class TestTraversal:

    async def test_depth_first_order_matches_recursive_visit(self):
        pages = {
            BASE: '<a href="a.html"></a><a href="b.html"></a>',
            BASE + '/a.html': '<a href="a1.html"></a><a href="b.html"></a>',
            BASE + '/a1.html': '',
            BASE + '/b.html': '<a href="a.html"></a>',
        }
        job, fetcher = make_job(pages)
        await job.run()

        assert fetcher.requested == [
            BASE, BASE + '/a.html', BASE + '/a1.html', BASE + '/b.html'
        ]
        assert job.status is JobStatus.DONE

    async def test_cycles_are_visited_once(self):
        pages = {
            BASE: '<a href="loop.html"></a>',
            BASE + '/loop.html': '<a href="loop.html"></a><a href="../loop.html"></a>',
        }
        job, fetcher = make_job(pages)
        await job.run()

        assert fetcher.requested == [BASE, BASE + '/loop.html']
        assert job.visited == {BASE, BASE + '/loop.html'}

    async def test_failed_fetch_abandons_only_that_branch(self):
        pages = {
            BASE: '<a href="gone.html"></a><a href="ok.html"></a>',
            BASE + '/ok.html': 'the NEEDLE is here',
        }
        job, _ = make_job(pages)
        await job.run()

        assert BASE + '/gone.html' in job.visited
        assert job.matches == (BASE + '/ok.html',)
        assert job.status is JobStatus.DONE

    async def test_unreachable_base_finishes_done_and_empty(self):
        job, _ = make_job({})
        await job.run()
        assert job.status is JobStatus.DONE
        assert job.matches == ()
        assert job.visited == {BASE}


class TestMatching:

    async def test_keyword_match_is_case_insensitive(self):
        pages = {
            BASE: '<a href="pet.html"></a>',
            BASE + '/pet.html': 'A big DOG barks',
        }
        job, _ = make_job(pages, keyword='dOg')
        await job.run()
        assert job.matches == (BASE + '/pet.html',)

    async def test_matches_are_subset_of_visited(self):
        pages = {
            BASE: 'needle <a href="a.html"></a><a href="b.html"></a>',
            BASE + '/a.html': 'nothing',
            BASE + '/b.html': 'Needle again',
        }
        job, _ = make_job(pages)
        await job.run()
        assert set(job.matches) <= job.visited
        assert job.matches == (BASE, BASE + '/b.html')


class TestStatus:

    async def test_timeout_stops_fetching(self):
        clock = FakeClock()
        pages = {
            BASE: '<a href="a.html"></a><a href="b.html"></a>',
            BASE + '/a.html': 'needle',
            BASE + '/b.html': 'needle',
        }
        job, fetcher = make_job(pages, timeout=2, clock=clock, step=1.0)
        await job.run()

        assert job.status is JobStatus.TIMEOUT
        assert fetcher.requested == [BASE, BASE + '/a.html']
        assert job.matches == (BASE + '/a.html',)

    async def test_expired_budget_before_first_step(self):
        clock = FakeClock()
        job, fetcher = make_job({BASE: 'needle'}, timeout=1, clock=clock)
        clock.now = 5
        await job.run()

        assert job.status is JobStatus.TIMEOUT
        assert fetcher.requested == []

    async def test_status_never_leaves_terminal_state(self):
        job, _ = make_job({BASE: ''})
        await job.run()
        assert job.status is JobStatus.DONE

        assert job._set_status(JobStatus.TIMEOUT) is False
        assert job.status is JobStatus.DONE

    async def test_snapshot_is_active_while_running_and_never_after(self):
        release = asyncio.Event()

        class BlockingFetcher(FakeFetcher):
            async def fetch(self, url):
                await release.wait()
                return await super().fetch(url)

        clock = FakeClock()
        fetcher = BlockingFetcher({BASE: 'needle'})
        job = CrawlJob('abcd1234', 'needle', BASE, 60, fetcher, clock=clock)
        task = job.start()
        await asyncio.sleep(0)

        assert job.snapshot().status is JobStatus.ACTIVE
        release.set()
        await task

        seen = {job.snapshot().status for _ in range(3)}
        assert seen == {JobStatus.DONE}

    async def test_unexpected_error_ends_job_done(self):
        class BrokenFetcher(FakeFetcher):
            async def fetch(self, url):
                raise RuntimeError('boom')

        job = CrawlJob('abcd1234', 'needle', BASE, 60, BrokenFetcher({}), clock=FakeClock())
        await job.run()
        assert job.status is JobStatus.DONE


class TestSnapshot:

    async def test_snapshot_is_detached_copy(self):
        pages = {
            BASE: '<a href="a.html"></a>',
            BASE + '/a.html': 'needle',
        }
        job, _ = make_job(pages)
        before = job.snapshot()
        await job.run()

        assert before == JobSnapshot(id='abcd1234', status=JobStatus.ACTIVE, urls=())
        assert job.snapshot().to_dict() == {
            'id': 'abcd1234',
            'status': 'done',
            'urls': [BASE + '/a.html'],
        }

    async def test_metrics_track_job_lifecycle(self):
        metrics = ServiceMetrics()
        pages = {BASE: 'needle <a href="gone.html"></a>'}
        job, _ = make_job(pages, metrics=metrics)
        await job.run()

        assert metrics.get_sample('crawler_pages_fetched_total') == 1
        assert metrics.get_sample('crawler_fetch_errors_total') == 1
        assert metrics.get_sample('crawler_keyword_matches_total') == 1
        assert metrics.get_sample('crawler_active_jobs') == 0
        assert metrics.get_sample('crawler_jobs_finished_total', {'status': 'done'}) == 1
