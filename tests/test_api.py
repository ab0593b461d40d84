"""
API layer tests.

Tests for key, synthesis and health endpoints.
"""
import pytest

from workbench.exceptions import RemoteProviderError


class TestHealthEndpoint:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_health_reports_ok(self, client, api_key):
        response = await client.get('/health')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ok'
        assert data['api_keys'] == 1
        assert isinstance(data['version'], str)


class TestKeyEndpoints:
    """Tests for /api/keys endpoints."""

    @pytest.mark.asyncio
    async def test_first_key_becomes_default(self, client):
        first = await client.post('/api/keys', json={'key': 'sk-one'})
        second = await client.post('/api/keys', json={'key': 'sk-two', 'remark': 'backup'})

        assert first.status_code == 201
        assert first.json()['is_default'] is True
        assert second.json()['is_default'] is False
        assert second.json()['platform'] == 'minimax'

    @pytest.mark.asyncio
    async def test_list_keys(self, client):
        await client.post('/api/keys', json={'key': 'sk-one'})
        await client.post('/api/keys', json={'key': 'sk-two'})

        response = await client.get('/api/keys')

        assert response.status_code == 200
        assert [k['key'] for k in response.json()['keys']] == ['sk-one', 'sk-two']

    @pytest.mark.asyncio
    async def test_set_default_key(self, client):
        await client.post('/api/keys', json={'key': 'sk-one'})
        second = (await client.post('/api/keys', json={'key': 'sk-two'})).json()

        response = await client.put(f'/api/keys/{second["id"]}/default')

        assert response.status_code == 200
        keys = (await client.get('/api/keys')).json()['keys']
        assert {k['key']: k['is_default'] for k in keys} == {'sk-one': False, 'sk-two': True}

    @pytest.mark.asyncio
    async def test_set_default_unknown_key(self, client):
        response = await client.put('/api/keys/999/default')

        assert response.status_code == 404
        assert response.json()['code'] == 'NOT_FOUND'

    @pytest.mark.asyncio
    async def test_delete_key(self, client):
        key = (await client.post('/api/keys', json={'key': 'sk-one'})).json()

        assert (await client.delete(f'/api/keys/{key["id"]}')).status_code == 204
        assert (await client.delete(f'/api/keys/{key["id"]}')).status_code == 404

    @pytest.mark.asyncio
    async def test_add_key_requires_key(self, client):
        response = await client.post('/api/keys', json={'key': ''})

        assert response.status_code == 422


class TestSynthesisEndpoints:
    """Tests for /api/synthesis endpoints."""

    @pytest.mark.asyncio
    async def test_create_job_returns_processing(self, client, api_key):
        response = await client.post('/api/synthesis', json={'text': 'hello', 'voice_id': 'v1'})

        assert response.status_code == 201
        data = response.json()
        assert data['status'] == 'processing'
        assert data['remote_task_id'] == 42
        assert data['mode'] == 'async'
        assert data['format'] == 'mp3'

    @pytest.mark.asyncio
    async def test_create_job_requires_voice(self, client, api_key):
        response = await client.post('/api/synthesis', json={'text': 'hello'})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_job_without_text_is_validation_error(self, client, api_key):
        response = await client.post('/api/synthesis', json={'voice_id': 'v1'})

        assert response.status_code == 422
        assert response.json()['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_create_job_without_keys(self, client):
        response = await client.post('/api/synthesis', json={'text': 'hello', 'voice_id': 'v1'})

        assert response.status_code == 400
        assert response.json()['code'] == 'CREDENTIAL_ERROR'

    @pytest.mark.asyncio
    async def test_rejected_submission_returns_failed_job(self, client, api_key, failing_submit):
        response = await client.post('/api/synthesis', json={'text': 'hello', 'voice_id': 'v1'})

        assert response.status_code == 201
        data = response.json()
        assert data['status'] == 'failed'
        assert data['remote_task_id'] is None
        assert 'upstream unavailable' in data['error_message']

    @pytest.mark.asyncio
    async def test_status_poll_to_audio(self, client, api_key, fake_provider):
        job = (await client.post('/api/synthesis', json={'text': 'hello', 'voice_id': 'v1'})).json()

        fake_provider.report('Processing')
        polled = await client.get(f'/api/synthesis/{job["id"]}/status')
        assert polled.status_code == 200
        assert polled.json()['status'] == 'processing'

        audio = await client.get(f'/api/synthesis/{job["id"]}/audio')
        assert audio.status_code == 404

        fake_provider.report('Success', file_id=7)
        polled = await client.get(f'/api/synthesis/{job["id"]}/status', params={'key_id': api_key.id})
        assert polled.json()['status'] == 'success'
        assert polled.json()['output_path'] == f'/files/job_{job["id"]}.mp3'

        audio = await client.get(f'/api/synthesis/{job["id"]}/audio')
        assert audio.status_code == 200
        assert audio.headers['content-type'] == 'audio/mpeg'
        assert audio.content == b'ID3-audio-bytes'

    @pytest.mark.asyncio
    async def test_status_of_unknown_job(self, client):
        response = await client.get('/api/synthesis/999/status')

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_status_query_failure_is_bad_gateway(self, client, api_key, fake_provider):
        job = (await client.post('/api/synthesis', json={'text': 'hello', 'voice_id': 'v1'})).json()
        fake_provider.status = RemoteProviderError('query error: invalid task')

        response = await client.get(f'/api/synthesis/{job["id"]}/status')

        assert response.status_code == 502
        assert response.json()['code'] == 'REMOTE_PROVIDER_ERROR'

    @pytest.mark.asyncio
    async def test_get_job_does_not_poll(self, client, api_key, fake_provider):
        job = (await client.post('/api/synthesis', json={'text': 'hello', 'voice_id': 'v1'})).json()

        response = await client.get(f'/api/synthesis/{job["id"]}')

        assert response.status_code == 200
        assert response.json()['text'] == 'hello'
        assert fake_provider.calls['query'] == 0

    @pytest.mark.asyncio
    async def test_list_jobs_pagination(self, client, api_key):
        for i in range(5):
            await client.post('/api/synthesis', json={'text': f'Job {i}', 'voice_id': 'v1'})

        response = await client.get('/api/synthesis?limit=2&offset=1')
        data = response.json()

        assert data['total'] == 5
        assert data['limit'] == 2
        assert data['offset'] == 1
        assert [j['text'] for j in data['jobs']] == ['Job 3', 'Job 2']

    @pytest.mark.asyncio
    async def test_upload_text_file(self, client, api_key, fake_provider):
        response = await client.post(
            '/api/synthesis/upload',
            files={'file': ('script.txt', 'uploaded words'.encode('utf-8'), 'text/plain')},
            data={'voice_id': 'v1'},
        )

        assert response.status_code == 201
        data = response.json()
        assert data['text'] == 'uploaded words'
        assert data['input_file'].endswith('.txt')
        assert fake_provider.requests[0].text == 'uploaded words'

    @pytest.mark.asyncio
    async def test_upload_empty_file_is_rejected(self, client, api_key):
        response = await client.post(
            '/api/synthesis/upload',
            files={'file': ('empty.txt', b'', 'text/plain')},
            data={'voice_id': 'v1'},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rejected_upload_leaves_no_file_behind(self, client, api_key, uploads_dir):
        response = await client.post(
            '/api/synthesis/upload',
            files={'file': ('empty.txt', b'   ', 'text/plain')},
            data={'voice_id': 'v1'},
        )

        assert response.status_code == 422
        assert list(uploads_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_upload_without_keys_leaves_no_file_behind(self, client, uploads_dir):
        response = await client.post(
            '/api/synthesis/upload',
            files={'file': ('script.txt', b'uploaded words', 'text/plain')},
            data={'voice_id': 'v1'},
        )

        assert response.status_code == 400
        assert list(uploads_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_job_removes_upload(self, client, api_key, uploads_dir):
        job = (await client.post(
            '/api/synthesis/upload',
            files={'file': ('script.txt', b'uploaded words', 'text/plain')},
            data={'voice_id': 'v1'},
        )).json()
        assert len(list(uploads_dir.iterdir())) == 1

        response = await client.delete(f'/api/synthesis/{job["id"]}')

        assert response.status_code == 204
        assert list(uploads_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_job(self, client, api_key, audio_dir):
        job = (await client.post(
            '/api/synthesis', json={'text': 'hello', 'voice_id': 'v1', 'mode': 'sync'}
        )).json()
        assert (audio_dir / f'job_{job["id"]}.mp3').exists()

        response = await client.delete(f'/api/synthesis/{job["id"]}')

        assert response.status_code == 204
        assert not (audio_dir / f'job_{job["id"]}.mp3').exists()
        assert (await client.get(f'/api/synthesis/{job["id"]}')).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_all_jobs(self, client, api_key):
        await client.post('/api/synthesis', json={'text': 'one', 'voice_id': 'v1'})
        await client.post('/api/synthesis', json={'text': 'two', 'voice_id': 'v1'})

        response = await client.delete('/api/synthesis')

        assert response.status_code == 204
        assert (await client.get('/api/synthesis')).json()['total'] == 0
